"""
Typed segments produced by analysis.

Four variants, one frozen dataclass each:
  - TodoSegment:           action item, with a Priority (default medium)
  - IdeaSegment:           optional free-form category
  - LearningSegment:       optional free-form topic
  - AccomplishmentSegment: text only

`confidence`, when present, is always within [0, 1]; None means the
classifier gave no usable score.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Union


class SegmentType(str, Enum):
    TODO = "todo"
    IDEA = "idea"
    LEARNING = "learning"
    ACCOMPLISHMENT = "accomplishment"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Stored todo priority: 1 = high, 2 = medium, 3 = low."""
        return {"high": 1, "medium": 2, "low": 3}[self.value]


@dataclass(frozen=True)
class TodoSegment:
    text: str
    priority: Priority = Priority.MEDIUM
    confidence: Optional[float] = None
    type: ClassVar[SegmentType] = SegmentType.TODO


@dataclass(frozen=True)
class IdeaSegment:
    text: str
    category: Optional[str] = None
    confidence: Optional[float] = None
    type: ClassVar[SegmentType] = SegmentType.IDEA


@dataclass(frozen=True)
class LearningSegment:
    text: str
    topic: Optional[str] = None
    confidence: Optional[float] = None
    type: ClassVar[SegmentType] = SegmentType.LEARNING


@dataclass(frozen=True)
class AccomplishmentSegment:
    text: str
    confidence: Optional[float] = None
    type: ClassVar[SegmentType] = SegmentType.ACCOMPLISHMENT


Segment = Union[TodoSegment, IdeaSegment, LearningSegment, AccomplishmentSegment]


@dataclass
class AnalysisResult:
    """Transcript plus the validated segments from one orchestration run."""

    transcript: str
    segments: List[Segment] = field(default_factory=list)
    dropped: int = 0  # candidates rejected by the validator

    def by_type(self, segment_type: SegmentType) -> List[Segment]:
        return [s for s in self.segments if s.type is segment_type]
