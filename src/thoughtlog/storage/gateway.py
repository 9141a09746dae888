"""
PersistenceGateway: the only writer of Log and segment rows.

Every write follows the same order:
  1. Validate all input (storage.validation). Nothing is opened on failure.
  2. Open one session/transaction.
  3. Insert or update the Log row and flush, so it has an id.
  4. Insert child rows against that id.
  5. Commit. Any exception before this point rolls everything back.

Integrity violations from the database (duplicate date, failed CHECK or
foreign key) are reported as ValidationError.
"""
import datetime as dt
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from thoughtlog.analysis.segments import AnalysisResult
from thoughtlog.errors import NotFoundError, ValidationError
from thoughtlog.models.log import Accomplishment, Idea, IdeaTag, Learning, Log, Todo, utc_now
from thoughtlog.models.read import LogRead, LogWithSegments, log_with_segments
from thoughtlog.storage.schemas import (
    AccomplishmentCreate,
    IdeaCreate,
    LearningCreate,
    LogCreate,
    LogSegments,
    TodoCreate,
    segments_from_analysis,
)
from thoughtlog.storage.validation import (
    MAX_TRANSCRIPT_LENGTH,
    check_length,
    parse_date,
    validate_log_create,
    validate_log_fields,
    validate_segments,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"audio_path", "transcript", "summary", "pending_analysis", "retry_count", "last_error"}
)


class PersistenceGateway:
    """Atomic Log + segment persistence over a SQLModel engine."""

    def __init__(self, engine):
        self.engine = engine

    # ─── Create ───────────────────────────────────────────────────────────────

    def save(self, log_data: LogCreate, segments: Optional[LogSegments] = None) -> LogWithSegments:
        """
        Create a Log and all of its segments in one transaction.

        Raises:
            ValidationError: invalid input or a Log already exists for the date.
        """
        log_date = validate_log_create(log_data)
        segments = segments or LogSegments()
        validate_segments(segments)

        with Session(self.engine) as session:
            try:
                log = Log(
                    date=log_date,
                    audio_path=log_data.audio_path,
                    transcript=log_data.transcript,
                    summary=log_data.summary,
                    pending_analysis=log_data.pending_analysis,
                    retry_count=log_data.retry_count,
                    last_error=log_data.last_error,
                )
                session.add(log)
                session.flush()
                self._insert_segments(session, log.id, segments)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValidationError(_integrity_message(exc, log_date)) from exc
            except Exception:
                session.rollback()
                raise

            logger.info("Saved log %d for %s", log.id, log_date.isoformat())
            return self._load(session, log.id)

    def save_analysis_result(
        self,
        result: AnalysisResult,
        audio_path: Optional[str] = None,
        log_date: Optional[dt.date] = None,
    ) -> LogWithSegments:
        """Persist an AnalysisResult as a new, fully analysed Log (date defaults to today)."""
        log_data = LogCreate(
            date=log_date or dt.date.today(),
            audio_path=audio_path,
            transcript=result.transcript or None,
        )
        return self.save(log_data, segments_from_analysis(result.segments))

    def add_segments(self, log_id: int, segments: LogSegments) -> LogWithSegments:
        """Attach segments to an existing Log. ValidationError if the Log does not exist."""
        validate_segments(segments)
        with Session(self.engine) as session:
            if session.get(Log, log_id) is None:
                raise ValidationError(f"Cannot add segments: log {log_id} does not exist")
            try:
                self._insert_segments(session, log_id, segments)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValidationError(f"Segment insert rejected: {exc.orig}") from exc
            except Exception:
                session.rollback()
                raise
            return self._load(session, log_id)

    # ─── Read ─────────────────────────────────────────────────────────────────

    def get(self, log_id: int) -> Optional[LogWithSegments]:
        """Log with all segments, or None."""
        with Session(self.engine) as session:
            return self._load(session, log_id)

    def get_by_date(self, log_date: dt.date) -> Optional[LogWithSegments]:
        log_date = parse_date(log_date)
        with Session(self.engine) as session:
            log = session.exec(select(Log).where(Log.date == log_date)).first()
            return self._load(session, log.id) if log else None

    def list_all(self, limit: int = 100, offset: int = 0) -> List[LogRead]:
        """Logs, most recent date first."""
        with Session(self.engine) as session:
            logs = session.exec(
                select(Log).order_by(Log.date.desc()).offset(offset).limit(limit)
            ).all()
            return [LogRead.model_validate(log) for log in logs]

    def pending_logs(self) -> List[LogRead]:
        """Logs awaiting analysis, oldest first."""
        with Session(self.engine) as session:
            logs = session.exec(
                select(Log)
                .where(Log.pending_analysis == True)  # noqa: E712
                .order_by(Log.created_at, Log.id)
            ).all()
            return [LogRead.model_validate(log) for log in logs]

    def count_pending(self) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count()).select_from(Log).where(Log.pending_analysis == True)  # noqa: E712
            ).one()

    # ─── Update / delete ──────────────────────────────────────────────────────

    def update_log(self, log_id: int, **fields) -> LogRead:
        """Update whitelisted Log fields. NotFoundError if absent."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update log fields: {', '.join(sorted(unknown))}")
        validate_log_fields(
            fields.get("transcript"), fields.get("summary"), fields.get("retry_count", 0)
        )
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            for key, value in fields.items():
                setattr(log, key, value)
            return self._commit_log(session, log)

    def delete_log(self, log_id: int) -> None:
        """Delete a Log and, by cascade, all of its segments."""
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            session.delete(log)
            session.commit()
        logger.info("Deleted log %d", log_id)

    # ─── Pending queue support ────────────────────────────────────────────────

    def mark_pending(self, log_id: int, error: str) -> LogRead:
        """Record a failed analysis attempt: stays pending, retry_count + 1."""
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            log.pending_analysis = True
            log.retry_count += 1
            log.last_error = error
            return self._commit_log(session, log)

    def mark_terminal(self, log_id: int, error: str) -> LogRead:
        """Analysis failed in a way retrying will not fix; leave the queue."""
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            log.pending_analysis = False
            log.last_error = error
            return self._commit_log(session, log)

    def mark_analyzed(self, log_id: int) -> LogRead:
        """Take a Log out of the queue without analysing it."""
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            log.pending_analysis = False
            log.last_error = None
            return self._commit_log(session, log)

    def reset_retry_count(self, log_id: int) -> LogRead:
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            log.retry_count = 0
            return self._commit_log(session, log)

    def complete_analysis(
        self, log_id: int, transcript: str, segments: Optional[LogSegments] = None
    ) -> LogWithSegments:
        """Fill in the transcript and segments of a pending Log and clear its pending state."""
        check_length(transcript, MAX_TRANSCRIPT_LENGTH, "transcript")
        segments = segments or LogSegments()
        validate_segments(segments)
        with Session(self.engine) as session:
            log = self._require(session, log_id)
            try:
                log.transcript = transcript or None
                log.pending_analysis = False
                log.last_error = None
                log.updated_at = utc_now()
                session.add(log)
                session.flush()
                self._insert_segments(session, log.id, segments)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ValidationError(f"Segment insert rejected: {exc.orig}") from exc
            except Exception:
                session.rollback()
                raise
            return self._load(session, log_id)

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _require(self, session: Session, log_id: int) -> Log:
        log = session.get(Log, log_id)
        if log is None:
            raise NotFoundError("Log", log_id)
        return log

    def _commit_log(self, session: Session, log: Log) -> LogRead:
        log.updated_at = utc_now()
        session.add(log)
        session.commit()
        session.refresh(log)
        return LogRead.model_validate(log)

    def _load(self, session: Session, log_id: int) -> Optional[LogWithSegments]:
        log = session.get(Log, log_id)
        if log is None:
            return None
        todos = session.exec(
            select(Todo).where(Todo.log_id == log_id).order_by(Todo.priority, Todo.created_at, Todo.id)
        ).all()
        ideas = session.exec(
            select(Idea).where(Idea.log_id == log_id).order_by(Idea.created_at, Idea.id)
        ).all()
        learnings = session.exec(
            select(Learning).where(Learning.log_id == log_id).order_by(Learning.created_at, Learning.id)
        ).all()
        accomplishments = session.exec(
            select(Accomplishment)
            .where(Accomplishment.log_id == log_id)
            .order_by(Accomplishment.created_at, Accomplishment.id)
        ).all()
        return log_with_segments(log, todos, ideas, learnings, accomplishments)

    def _insert_segments(self, session: Session, log_id: int, segments: LogSegments) -> None:
        self._insert_todos(session, log_id, segments.todos)
        self._insert_ideas(session, log_id, segments.ideas)
        self._insert_learnings(session, log_id, segments.learnings)
        self._insert_accomplishments(session, log_id, segments.accomplishments)
        session.flush()

    def _insert_todos(self, session: Session, log_id: int, todos: List[TodoCreate]) -> None:
        for item in todos:
            session.add(
                Todo(
                    log_id=log_id,
                    text=item.text,
                    priority=item.priority,
                    completed=item.completed,
                    due_date=parse_date(item.due_date, "due_date") if item.due_date else None,
                )
            )

    def _insert_ideas(self, session: Session, log_id: int, ideas: List[IdeaCreate]) -> None:
        for item in ideas:
            idea = Idea(log_id=log_id, text=item.text, status=item.status)
            session.add(idea)
            session.flush()
            for position, tag in enumerate(item.tags):
                session.add(IdeaTag(idea_id=idea.id, position=position, tag=tag))

    def _insert_learnings(self, session: Session, log_id: int, learnings: List[LearningCreate]) -> None:
        for item in learnings:
            session.add(Learning(log_id=log_id, text=item.text, category=item.category))

    def _insert_accomplishments(
        self, session: Session, log_id: int, accomplishments: List[AccomplishmentCreate]
    ) -> None:
        for item in accomplishments:
            session.add(Accomplishment(log_id=log_id, text=item.text, impact=item.impact))


def _integrity_message(exc: IntegrityError, log_date: dt.date) -> str:
    detail = str(exc.orig)
    if "UNIQUE" in detail.upper() and "log.date" in detail:
        return f"A log already exists for {log_date.isoformat()}"
    return f"Log insert rejected: {detail}"
