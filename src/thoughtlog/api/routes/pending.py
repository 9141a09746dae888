"""Pending queue routes: inspect, retry, and administer queued analyses."""
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from thoughtlog.api.deps import get_service
from thoughtlog.models.read import LogRead
from thoughtlog.service import ThoughtLogService

router = APIRouter()


class RetryResponse(BaseModel):
    log_id: int
    succeeded: bool
    skipped: bool
    reason: Optional[str] = None
    next_delay_ms: Optional[float] = None
    error: Optional[str] = None


class SweepResponse(BaseModel):
    processed: int
    succeeded: int
    failed: int
    skipped: int
    already_running: bool


@router.get("/", response_model=List[LogRead])
def list_pending(service: ThoughtLogService = Depends(get_service)):
    """Logs waiting for analysis, oldest first."""
    return service.pending_items()


@router.post("/retry", response_model=SweepResponse)
async def retry_all(service: ThoughtLogService = Depends(get_service)):
    """Sweep the whole queue now."""
    return SweepResponse(**asdict(await service.retry_all_pending()))


@router.post("/{log_id}/retry", response_model=RetryResponse)
async def retry_one(log_id: int, service: ThoughtLogService = Depends(get_service)):
    return RetryResponse(**asdict(await service.retry_pending(log_id)))


@router.post("/{log_id}/reset", response_model=LogRead)
def reset_retries(log_id: int, service: ThoughtLogService = Depends(get_service)):
    """Make a log that hit the retry limit eligible for sweeps again."""
    return service.reset_retry_count(log_id)


@router.post("/{log_id}/analyzed", response_model=LogRead)
def mark_analyzed(log_id: int, service: ThoughtLogService = Depends(get_service)):
    """Drop a log from the queue without analysing it."""
    return service.mark_as_analyzed(log_id)
