"""Analysis-only routes: classify input and return segments without storing anything."""
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from thoughtlog.analysis.segments import AnalysisResult
from thoughtlog.analysis.stats import calculate_stats
from thoughtlog.api.deps import get_service
from thoughtlog.errors import ValidationError
from thoughtlog.service import ThoughtLogService

router = APIRouter()


class TextRequest(BaseModel):
    text: str


class StatsResponse(BaseModel):
    total: int
    by_type: Dict[str, int]
    unscored: int
    needs_review: int
    average_confidence: Optional[float]


class AnalysisResponse(BaseModel):
    transcript: str
    segments: List[Dict[str, Any]]
    dropped: int
    stats: StatsResponse


def to_response(result: AnalysisResult) -> AnalysisResponse:
    stats = calculate_stats(result.segments)
    return AnalysisResponse(
        transcript=result.transcript,
        segments=[{"type": s.type.value, **asdict(s)} for s in result.segments],
        dropped=result.dropped,
        stats=StatsResponse(
            total=stats.total,
            by_type={t.value: n for t, n in stats.by_type.items()},
            unscored=stats.unscored,
            needs_review=stats.needs_review,
            average_confidence=stats.average_confidence,
        ),
    )


async def read_audio(request: Request) -> bytes:
    audio = await request.body()
    if not audio:
        raise ValidationError("Request body must contain audio bytes")
    return audio


@router.post("/text", response_model=AnalysisResponse)
async def analyze_text(body: TextRequest, service: ThoughtLogService = Depends(get_service)):
    """Classify typed text."""
    return to_response(await service.analyze_text(body.text))


@router.post("/audio", response_model=AnalysisResponse)
async def analyze_audio(request: Request, service: ThoughtLogService = Depends(get_service)):
    """Transcribe and classify a raw audio body. Content-Type gives the format."""
    audio = await read_audio(request)
    mime_type = request.headers.get("content-type", "audio/wav")
    return to_response(await service.analyze_audio(audio, mime_type))
