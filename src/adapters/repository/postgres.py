"""
PostgreSQL repository adapter - Implements DraftRepository protocol.

This module provides the PostgreSQL implementation of the domain's draft
persistence port using psycopg3 with raw SQL. Each draft is one jsonb row
keyed by ``(namespace, draft_id)``; saves are whole-record upserts.

Only the ``{currentStep, sections}`` subset handed over by the domain is
stored. Anything else (credentials, document binaries) never reaches this
adapter.
"""

import json
import logging
from pathlib import Path
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.exceptions import DraftStorageError

logger = logging.getLogger(__name__)


class PostgresDraftRepository:
    """
    Implements DraftRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries. Driver errors are translated to
    DraftStorageError so the domain can degrade to in-memory operation.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def load(self, namespace: str, draft_id: str) -> dict[str, Any] | None:
        sql = """
            SELECT payload
            FROM registration_drafts
            WHERE namespace = %s AND draft_id = %s
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (namespace, draft_id))
                row = cursor.fetchone()
        except psycopg.Error as e:
            raise DraftStorageError(f"Could not load draft {draft_id}") from e

        if row is None:
            return None

        payload = row[0]
        # jsonb is decoded by psycopg; a text column would hand back a string
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise DraftStorageError(f"Stored draft {draft_id} is not valid JSON") from e
        if not isinstance(payload, dict):
            raise DraftStorageError(f"Stored draft {draft_id} is not an object")
        return payload

    def save(self, namespace: str, draft_id: str, payload: dict[str, Any]) -> None:
        """
        Upsert the persisted subset of a draft.

        Uses INSERT ... ON CONFLICT DO UPDATE so concurrent saves of the
        same draft resolve to last-writer-wins without a read first.
        """
        sql = """
            INSERT INTO registration_drafts (namespace, draft_id, payload, updated_at)
            VALUES (%s, %s, %s::jsonb, NOW())
            ON CONFLICT (namespace, draft_id) DO UPDATE
            SET payload = EXCLUDED.payload,
                updated_at = NOW()
        """

        try:
            document = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise DraftStorageError(f"Draft {draft_id} is not serializable") from e

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (namespace, draft_id, document))
                conn.commit()
        except psycopg.Error as e:
            raise DraftStorageError(f"Could not save draft {draft_id}") from e

    def delete(self, namespace: str, draft_id: str) -> None:
        sql = "DELETE FROM registration_drafts WHERE namespace = %s AND draft_id = %s"

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (namespace, draft_id))
                conn.commit()
        except psycopg.Error as e:
            raise DraftStorageError(f"Could not delete draft {draft_id}") from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except (OSError, psycopg.Error) as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
        logger.info("Migration complete: %s", sql_file.name)
