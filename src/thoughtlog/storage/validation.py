"""Checks run on gateway input before any write. Every failure is a ValidationError."""
import datetime as dt
import re
from typing import Optional, Union

from thoughtlog.errors import ValidationError
from thoughtlog.models.log import IdeaStatus, Impact
from thoughtlog.storage.schemas import LogCreate, LogSegments

MAX_TRANSCRIPT_LENGTH = 10000
MAX_SUMMARY_LENGTH = 10000
MAX_TODO_LENGTH = 500
MAX_SEGMENT_LENGTH = 1000  # ideas, learnings, accomplishments
MAX_LABEL_LENGTH = 100  # idea tags, learning categories

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

IDEA_STATUSES = frozenset(s.value for s in IdeaStatus)
IMPACTS = frozenset(i.value for i in Impact)
PRIORITIES = frozenset({1, 2, 3})


def parse_date(value: Union[str, dt.date], field_name: str = "date") -> dt.date:
    """Accept a date or a YYYY-MM-DD string naming a real calendar day."""
    if isinstance(value, dt.datetime):
        raise ValidationError(f"{field_name} must be a date, not a datetime")
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError(f"{field_name} must use YYYY-MM-DD format (got {value!r})")
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"{field_name} is not a valid date: {value}") from exc


def check_length(value: Optional[str], limit: int, field_name: str) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(f"{field_name} must be at most {limit} characters (got {len(value)})")


def check_text(value: str, limit: int, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    check_length(value, limit, field_name)


def check_retry_count(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"retry_count must be a non-negative integer (got {value!r})")


def validate_log_fields(
    transcript: Optional[str] = None,
    summary: Optional[str] = None,
    retry_count: int = 0,
) -> None:
    check_length(transcript, MAX_TRANSCRIPT_LENGTH, "transcript")
    check_length(summary, MAX_SUMMARY_LENGTH, "summary")
    check_retry_count(retry_count)


def validate_log_create(data: LogCreate) -> dt.date:
    """Validate a LogCreate and return its parsed date."""
    log_date = parse_date(data.date)
    validate_log_fields(data.transcript, data.summary, data.retry_count)
    return log_date


def validate_segments(segments: LogSegments) -> None:
    for i, todo in enumerate(segments.todos):
        check_text(todo.text, MAX_TODO_LENGTH, f"todos[{i}].text")
        if isinstance(todo.priority, bool) or todo.priority not in PRIORITIES:
            raise ValidationError(f"todos[{i}].priority must be 1, 2 or 3 (got {todo.priority!r})")
        if todo.due_date is not None:
            parse_date(todo.due_date, f"todos[{i}].due_date")

    for i, idea in enumerate(segments.ideas):
        check_text(idea.text, MAX_SEGMENT_LENGTH, f"ideas[{i}].text")
        if idea.status not in IDEA_STATUSES:
            raise ValidationError(
                f"ideas[{i}].status must be one of {sorted(IDEA_STATUSES)} (got {idea.status!r})"
            )
        for j, tag in enumerate(idea.tags):
            check_text(tag, MAX_LABEL_LENGTH, f"ideas[{i}].tags[{j}]")

    for i, learning in enumerate(segments.learnings):
        check_text(learning.text, MAX_SEGMENT_LENGTH, f"learnings[{i}].text")
        check_length(learning.category, MAX_LABEL_LENGTH, f"learnings[{i}].category")

    for i, accomplishment in enumerate(segments.accomplishments):
        check_text(accomplishment.text, MAX_SEGMENT_LENGTH, f"accomplishments[{i}].text")
        if accomplishment.impact not in IMPACTS:
            raise ValidationError(
                f"accomplishments[{i}].impact must be one of {sorted(IMPACTS)} "
                f"(got {accomplishment.impact!r})"
            )
