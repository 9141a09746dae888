"""
Gateway input records.

Plain dataclasses: nothing is checked on construction. The gateway runs
storage.validation over them before opening a transaction, so every rule
violation surfaces as ValidationError.
"""
import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from thoughtlog.analysis.segments import (
    AccomplishmentSegment,
    IdeaSegment,
    LearningSegment,
    Segment,
    TodoSegment,
)
from thoughtlog.models.log import IdeaStatus, Impact


@dataclass
class LogCreate:
    date: Union[str, dt.date]  # YYYY-MM-DD
    audio_path: Optional[str] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None
    pending_analysis: bool = False
    retry_count: int = 0
    last_error: Optional[str] = None


@dataclass
class TodoCreate:
    text: str
    priority: int = 2
    completed: bool = False
    due_date: Optional[Union[str, dt.date]] = None


@dataclass
class IdeaCreate:
    text: str
    status: str = IdeaStatus.RAW.value
    tags: List[str] = field(default_factory=list)


@dataclass
class LearningCreate:
    text: str
    category: Optional[str] = None


@dataclass
class AccomplishmentCreate:
    text: str
    impact: str = Impact.MEDIUM.value


@dataclass
class LogSegments:
    todos: List[TodoCreate] = field(default_factory=list)
    ideas: List[IdeaCreate] = field(default_factory=list)
    learnings: List[LearningCreate] = field(default_factory=list)
    accomplishments: List[AccomplishmentCreate] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.todos or self.ideas or self.learnings or self.accomplishments)


def segments_from_analysis(segments: Iterable[Segment]) -> LogSegments:
    """
    Map analysis segments onto row inputs.

    todo priority high/medium/low -> 1/2/3, idea category -> its only tag,
    learning topic -> category, accomplishments get medium impact.
    """
    result = LogSegments()
    for segment in segments:
        if isinstance(segment, TodoSegment):
            result.todos.append(TodoCreate(text=segment.text, priority=segment.priority.rank))
        elif isinstance(segment, IdeaSegment):
            tags = [segment.category] if segment.category else []
            result.ideas.append(IdeaCreate(text=segment.text, tags=tags))
        elif isinstance(segment, LearningSegment):
            result.learnings.append(LearningCreate(text=segment.text, category=segment.topic))
        elif isinstance(segment, AccomplishmentSegment):
            result.accomplishments.append(AccomplishmentCreate(text=segment.text))
        else:
            raise TypeError(f"Unsupported segment: {segment!r}")
    return result
