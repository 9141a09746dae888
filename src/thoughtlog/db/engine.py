"""SQLModel engine singleton and schema setup."""

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine

from thoughtlog.config import get_settings

_engine = None


def enable_sqlite_foreign_keys(engine) -> None:
    """Turn on FK enforcement (and ON DELETE CASCADE) for every new SQLite connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def init_db(engine) -> None:
    """Create missing tables, then bring older databases up to date."""
    # Import models so metadata is populated before create_all
    from thoughtlog.models.log import Accomplishment, Idea, IdeaTag, Learning, Log, Todo  # noqa
    SQLModel.metadata.create_all(engine)
    from thoughtlog.db.migrations import run_migrations
    run_migrations(engine)


def get_engine():
    """Return the module-level engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},  # SQLite only; the API serves from a threadpool
        )
        enable_sqlite_foreign_keys(_engine)
        init_db(_engine)
    return _engine
