"""Stored log routes: create from text or audio, list, fetch, delete."""
import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel

from thoughtlog.api.deps import get_service
from thoughtlog.api.routes.analysis import TextRequest, read_audio
from thoughtlog.errors import NotFoundError
from thoughtlog.models.read import LogRead, LogWithSegments
from thoughtlog.service import ThoughtLogService

router = APIRouter()


class LogTextRequest(TextRequest):
    date: Optional[dt.date] = None


class CaptureResponse(BaseModel):
    log_id: int
    pending: bool
    segment_count: int
    error: Optional[str] = None


@router.get("/", response_model=List[LogRead])
def list_logs(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ThoughtLogService = Depends(get_service),
):
    """List logs, most recent date first."""
    return service.list_logs(limit=limit, offset=offset)


@router.get("/{log_id}", response_model=LogWithSegments)
def get_log(log_id: int, service: ThoughtLogService = Depends(get_service)):
    """Fetch one log with all of its segments."""
    log = service.get_log(log_id)
    if log is None:
        raise NotFoundError("Log", log_id)
    return log


@router.delete("/{log_id}", status_code=204)
def delete_log(log_id: int, service: ThoughtLogService = Depends(get_service)):
    """Delete a log, its segments and its audio file."""
    service.delete_log(log_id)
    return Response(status_code=204)


@router.post("/text", response_model=LogWithSegments, status_code=201)
async def create_from_text(body: LogTextRequest, service: ThoughtLogService = Depends(get_service)):
    """Analyse typed text and store it as the log for `date` (default today)."""
    return await service.submit_text(body.text, log_date=body.date)


@router.post("/audio", response_model=CaptureResponse)
async def create_from_audio(
    request: Request,
    response: Response,
    log_date: Optional[dt.date] = Query(None, alias="date"),
    service: ThoughtLogService = Depends(get_service),
):
    """
    Store a raw audio body and analyse it.

    201 when analysed now, 202 when the analysis was queued for retry.
    """
    audio = await read_audio(request)
    mime_type = request.headers.get("content-type", "audio/wav")
    outcome = await service.submit_audio(audio, mime_type, log_date=log_date)
    response.status_code = 202 if outcome.pending else 201
    return CaptureResponse(
        log_id=outcome.log_id,
        pending=outcome.pending,
        segment_count=len(outcome.result.segments) if outcome.result else 0,
        error=str(outcome.error) if outcome.error else None,
    )
