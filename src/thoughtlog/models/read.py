"""Detached read models returned by the gateway and the API."""
import datetime as dt
from typing import List, Optional

from sqlmodel import SQLModel

from thoughtlog.models.log import Accomplishment, Idea, Learning, Log, Todo


class LogRead(SQLModel):
    id: int
    date: dt.date
    audio_path: Optional[str] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None
    pending_analysis: bool = False
    retry_count: int = 0
    last_error: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class TodoRead(SQLModel):
    id: int
    log_id: int
    text: str
    completed: bool
    due_date: Optional[dt.date] = None
    priority: int
    created_at: dt.datetime


class IdeaRead(SQLModel):
    id: int
    log_id: int
    text: str
    status: str
    tags: List[str] = []
    created_at: dt.datetime


class LearningRead(SQLModel):
    id: int
    log_id: int
    text: str
    category: Optional[str] = None
    created_at: dt.datetime


class AccomplishmentRead(SQLModel):
    id: int
    log_id: int
    text: str
    impact: str
    created_at: dt.datetime


class LogWithSegments(LogRead):
    todos: List[TodoRead] = []
    ideas: List[IdeaRead] = []
    learnings: List[LearningRead] = []
    accomplishments: List[AccomplishmentRead] = []

    @property
    def segment_count(self) -> int:
        return len(self.todos) + len(self.ideas) + len(self.learnings) + len(self.accomplishments)


def idea_read(idea: Idea) -> IdeaRead:
    return IdeaRead.model_validate(idea, update={"tags": [t.tag for t in idea.tags]})


def log_with_segments(
    log: Log,
    todos: List[Todo],
    ideas: List[Idea],
    learnings: List[Learning],
    accomplishments: List[Accomplishment],
) -> LogWithSegments:
    """Build the read model while the session that loaded the rows is still open."""
    return LogWithSegments.model_validate(
        log,
        update={
            "todos": [TodoRead.model_validate(t) for t in todos],
            "ideas": [idea_read(i) for i in ideas],
            "learnings": [LearningRead.model_validate(l) for l in learnings],
            "accomplishments": [AccomplishmentRead.model_validate(a) for a in accomplishments],
        },
    )
