"""
Base repository providing shared SQLite execution helpers.

All repositories inherit from ``BaseRepository`` and receive a
``sqlite3.Connection`` at construction time. The connection is assumed
to be opened and managed by the caller (typically via ``get_connection()``).

Design:
  - No ORM - all SQL is explicit and lives in repository methods.
  - Repositories speak Pydantic models, not raw dicts.
  - ``savepoint()`` scopes a single record write so a failing insert rolls
    back only itself, never rows already written in the same transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, Optional

logger = logging.getLogger(__name__)


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def last_insert_rowid(self) -> int:
        row = self.fetchone("SELECT last_insert_rowid() AS rowid;")
        assert row is not None
        return int(row["rowid"])

    @contextmanager
    def savepoint(self, name: str = "record") -> Generator[None, None, None]:
        """Run the enclosed statements inside a named SAVEPOINT.

        On exception the savepoint is rolled back and released, then the
        exception propagates.
        """
        self.conn.execute(f"SAVEPOINT {name};")
        try:
            yield
        except Exception:
            self.conn.execute(f"ROLLBACK TO SAVEPOINT {name};")
            self.conn.execute(f"RELEASE SAVEPOINT {name};")
            raise
        self.conn.execute(f"RELEASE SAVEPOINT {name};")
