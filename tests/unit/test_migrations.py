"""Tests for database migration helpers."""
import datetime as dt

import pytest
from sqlalchemy import text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from thoughtlog.db.migrations import run_migrations
from thoughtlog.models.log import Log


@pytest.fixture(name="migration_engine")
def migration_engine_fixture():
    """In-memory SQLite engine with full schema, for testing migrations."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="legacy_engine")
def legacy_engine_fixture():
    """A database whose log table predates the pending queue columns."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE log ("
            "id INTEGER PRIMARY KEY, date DATE NOT NULL UNIQUE, audio_path VARCHAR, "
            "transcript VARCHAR, summary VARCHAR, created_at DATETIME NOT NULL, "
            "updated_at DATETIME NOT NULL)"
        ))
        conn.execute(text(
            "INSERT INTO log (date, transcript, created_at, updated_at) "
            "VALUES ('2024-12-31', 'old note', '2024-12-31 08:00:00', '2024-12-31 08:00:00')"
        ))
    yield engine
    engine.dispose()


def _columns(engine, table):
    with engine.connect() as conn:
        return {row[1] for row in conn.execute(text(f"PRAGMA table_info({table})"))}


class TestRunMigrations:
    def test_run_migrations_does_not_raise(self, migration_engine):
        """Migration should complete without errors on a fresh DB."""
        run_migrations(migration_engine)

    def test_run_migrations_is_idempotent(self, migration_engine):
        """Running migrations twice must not raise (columns already exist)."""
        run_migrations(migration_engine)
        run_migrations(migration_engine)

    def test_adds_pending_columns_to_legacy_table(self, legacy_engine):
        assert "pending_analysis" not in _columns(legacy_engine, "log")
        run_migrations(legacy_engine)
        assert {"pending_analysis", "retry_count", "last_error"} <= _columns(legacy_engine, "log")

    def test_existing_rows_get_defaults(self, legacy_engine):
        run_migrations(legacy_engine)
        with Session(legacy_engine) as s:
            log = s.exec(select(Log)).one()
        assert log.date == dt.date(2024, 12, 31)
        assert log.pending_analysis is False
        assert log.retry_count == 0
        assert log.last_error is None

    def test_pending_columns_writable_after_migration(self, legacy_engine):
        run_migrations(legacy_engine)
        with Session(legacy_engine) as s:
            log = s.exec(select(Log)).one()
            log.pending_analysis = True
            log.retry_count = 2
            log.last_error = "Network down"
            s.add(log)
            s.commit()
            s.refresh(log)
            assert log.retry_count == 2
            assert log.last_error == "Network down"
