"""
Database migrations for thoughtlog.

Uses SQLite ALTER TABLE ADD COLUMN for incremental schema evolution.
Each migration is idempotent: columns are only added if absent.

Called automatically from init_db() after create_all() so both fresh
installs and databases created before the pending queue existed are handled.
"""
from sqlalchemy import text


def run_migrations(engine) -> None:
    """Apply all pending schema migrations. Safe to call repeatedly. SQLite only."""
    with engine.connect() as conn:
        # Log: pending queue state
        _add_column_if_missing(conn, "log", "pending_analysis", "BOOLEAN NOT NULL DEFAULT 0")
        _add_column_if_missing(conn, "log", "retry_count", "INTEGER NOT NULL DEFAULT 0")
        _add_column_if_missing(conn, "log", "last_error", "TEXT")

        conn.commit()


def _add_column_if_missing(conn, table: str, column: str, col_type: str) -> None:
    """Add a column to a table if it doesn't already exist.

    Args:
        conn: SQLAlchemy connection.
        table: Table name (lowercase, as SQLite stores it).
        column: Column name to add.
        col_type: SQLite column definition, e.g. "INTEGER NOT NULL DEFAULT 0".
    """
    result = conn.execute(text(f"PRAGMA table_info({table})"))
    existing_columns = {row[1] for row in result}
    if column not in existing_columns:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {col_type}"))
