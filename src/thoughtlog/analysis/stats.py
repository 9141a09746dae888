"""Summary statistics over validated segments, for review screens and logging."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Optional

from thoughtlog.analysis.segments import Segment, SegmentType

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def confidence_level(confidence: float) -> ConfidenceLevel:
    """high above 0.8, medium from 0.5, low below."""
    if confidence > HIGH_CONFIDENCE:
        return ConfidenceLevel.HIGH
    if confidence >= MEDIUM_CONFIDENCE:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


@dataclass
class SegmentStats:
    total: int = 0
    by_type: Dict[SegmentType, int] = field(
        default_factory=lambda: {t: 0 for t in SegmentType}
    )
    by_confidence: Dict[ConfidenceLevel, int] = field(
        default_factory=lambda: {level: 0 for level in ConfidenceLevel}
    )
    unscored: int = 0
    needs_review: int = 0
    average_confidence: Optional[float] = None


def calculate_stats(segments: Iterable[Segment], review_threshold: float = 0.5) -> SegmentStats:
    """
    Count segments by type and confidence band.

    Segments without a confidence score are counted as unscored and never
    flagged for review.
    """
    stats = SegmentStats()
    scores = []
    for segment in segments:
        stats.total += 1
        stats.by_type[segment.type] += 1
        if segment.confidence is None:
            stats.unscored += 1
            continue
        scores.append(segment.confidence)
        stats.by_confidence[confidence_level(segment.confidence)] += 1
        if segment.confidence < review_threshold:
            stats.needs_review += 1

    if scores:
        stats.average_confidence = sum(scores) / len(scores)
    return stats
