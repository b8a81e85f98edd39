from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns we must ensure exist in the "practice_session" table.
# (name, sqlite_type, postgres_type)
REQUIRED_PRACTICE_SESSION_COLUMNS: List[Tuple[str, str, str]] = [
    ("bands_prefer_score", "JSON", "JSON"),
    ("result", "JSON", "JSON"),
    ("result_checksum", "VARCHAR(64)", "VARCHAR(64)"),
    ("finalized_at", "DATETIME", "TIMESTAMP"),
]

# Columns we must ensure exist in the "members" table.
REQUIRED_MEMBER_COLUMNS: List[Tuple[str, str, str]] = [
    ("practice_available", "BOOLEAN", "BOOLEAN"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table_name: str) -> bool:
    with engine.connect() as conn:
        if _is_sqlite(engine):
            result = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"),
                {"table_name": table_name},
            ).fetchone()
            return bool(result)
        result = conn.execute(
            text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = :table_name
            )
        """),
            {"table_name": table_name},
        ).fetchone()
        return bool(result and result[0])


def _ensure_columns(engine: Engine, table: str, required: List[Tuple[str, str, str]]) -> List[str]:
    """Add any missing columns (all nullable, no defaults). Returns the names added."""
    if not _is_sqlite(engine):
        existing = _get_existing_columns_postgres(engine, table)
    else:
        existing = _get_existing_columns_sqlite(engine, table)

    added: List[str] = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type in required:
            if name in existing:
                continue
            if _is_sqlite(engine):
                # SQLite supports ADD COLUMN without IF NOT EXISTS
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sqlite_type};"))
            else:
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {name} {pg_type};"))
            added.append(name)
    return added


def ensure_practice_session_columns(engine: Engine) -> None:
    """
    Idempotently adds result columns to 'practice_session' if missing.
    Safe to run at every startup; older databases only had the schedule columns.
    """
    try:
        from app.models.practice_session import PracticeSession

        table = PracticeSession.__table__.name
        if not _table_exists(engine, table):
            # create_all should create it
            return
        added = _ensure_columns(engine, table, REQUIRED_PRACTICE_SESSION_COLUMNS)
        if added:
            logger.info("SCHEMA_PATCH: %s added columns=%s", table, added)
    except Exception as e:
        # Log error but don't crash the server
        logger.warning("Failed to ensure practice_session columns (this is OK if table doesn't exist yet): %s", e)


def ensure_member_columns(engine: Engine) -> None:
    """Idempotently adds practice_available to 'members' if missing (NULL = no penalty)."""
    try:
        from app.models.member import Member

        table = Member.__table__.name
        if not _table_exists(engine, table):
            return
        added = _ensure_columns(engine, table, REQUIRED_MEMBER_COLUMNS)
        if added:
            logger.info("SCHEMA_PATCH: %s added columns=%s", table, added)
    except Exception as e:
        logger.warning("Failed to ensure member columns (this is OK if table doesn't exist yet): %s", e)
