"""Log and segment tables: one Log per day, segments owned by it."""
import datetime as dt
from enum import Enum
from typing import List, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class IdeaStatus(str, Enum):
    RAW = "raw"
    DEVELOPING = "developing"
    ACTIONABLE = "actionable"
    ARCHIVED = "archived"


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Log(SQLModel, table=True):
    """One capture session. `date` is unique across all logs."""

    __table_args__ = (CheckConstraint("retry_count >= 0", name="ck_log_retry_count"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    date: dt.date = Field(unique=True, index=True)
    audio_path: Optional[str] = None
    transcript: Optional[str] = None
    summary: Optional[str] = None  # filled by a later summarizer, never by analysis

    # Pending queue state
    pending_analysis: bool = Field(default=False, index=True)
    retry_count: int = 0
    last_error: Optional[str] = None

    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    todos: List["Todo"] = Relationship(back_populates="log", cascade_delete=True)
    ideas: List["Idea"] = Relationship(back_populates="log", cascade_delete=True)
    learnings: List["Learning"] = Relationship(back_populates="log", cascade_delete=True)
    accomplishments: List["Accomplishment"] = Relationship(
        back_populates="log", cascade_delete=True
    )


class Todo(SQLModel, table=True):
    __table_args__ = (CheckConstraint("priority IN (1, 2, 3)", name="ck_todo_priority"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    log_id: int = Field(foreign_key="log.id", index=True, ondelete="CASCADE")
    text: str
    completed: bool = False
    due_date: Optional[dt.date] = None
    priority: int = 2  # 1 = high, 2 = medium, 3 = low
    created_at: dt.datetime = Field(default_factory=utc_now)

    log: Optional[Log] = Relationship(back_populates="todos")


class Idea(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint(
            "status IN ('raw', 'developing', 'actionable', 'archived')",
            name="ck_idea_status",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    log_id: int = Field(foreign_key="log.id", index=True, ondelete="CASCADE")
    text: str
    status: str = IdeaStatus.RAW.value
    created_at: dt.datetime = Field(default_factory=utc_now)

    log: Optional[Log] = Relationship(back_populates="ideas")
    tags: List["IdeaTag"] = Relationship(
        back_populates="idea",
        cascade_delete=True,
        sa_relationship_kwargs={"order_by": "IdeaTag.position"},
    )


class IdeaTag(SQLModel, table=True):
    """One row per tag; `position` keeps the tag list in its original order."""

    id: Optional[int] = Field(default=None, primary_key=True)
    idea_id: int = Field(foreign_key="idea.id", index=True, ondelete="CASCADE")
    position: int = 0
    tag: str

    idea: Optional[Idea] = Relationship(back_populates="tags")


class Learning(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    log_id: int = Field(foreign_key="log.id", index=True, ondelete="CASCADE")
    text: str
    category: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=utc_now)

    log: Optional[Log] = Relationship(back_populates="learnings")


class Accomplishment(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("impact IN ('low', 'medium', 'high')", name="ck_accomplishment_impact"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    log_id: int = Field(foreign_key="log.id", index=True, ondelete="CASCADE")
    text: str
    impact: str = Impact.MEDIUM.value
    created_at: dt.datetime = Field(default_factory=utc_now)

    log: Optional[Log] = Relationship(back_populates="accomplishments")
