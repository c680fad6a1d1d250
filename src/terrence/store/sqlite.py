"""SQLite row store via aiosqlite, used for local stores and tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from terrence.errors import StoreError
from terrence.store.sql import SQLITE, SqlRowStore

logger = logging.getLogger(__name__)


def _load_schema_sql() -> str:
    """Read the DDL script bundled with the package."""
    schema_file = Path(__file__).resolve().parent.parent / "schema" / "functions.sql"
    return schema_file.read_text(encoding="utf-8")


class SqliteRowStore(SqlRowStore):
    """Row store backed by a single SQLite connection.

    Parameters
    ----------
    db_path:
        File-system path for the SQLite file.  Use ``:memory:`` for tests.
    create_schema:
        Run the bundled ``CREATE TABLE IF NOT EXISTS`` script on open.
    """

    name = "sqlite"
    dialect = SQLITE

    def __init__(self, db_path: str, *, create_schema: bool = True) -> None:
        self._db_path = db_path
        self._create_schema = create_schema
        self._connection: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        if self._connection is not None:
            return
        logger.info("Opening SQLite store at %s", self._db_path)
        try:
            conn = await aiosqlite.connect(self._db_path)
            conn.row_factory = aiosqlite.Row  # type: ignore[assignment]
            await conn.execute("PRAGMA busy_timeout = 5000")
            if self._create_schema:
                await conn.executescript(_load_schema_sql())
                await conn.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise StoreError(f"SQLite open failed: {exc}") from exc
        self._connection = conn

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("SQLite store closed")

    @property
    def connection(self) -> aiosqlite.Connection:
        """Return the open connection.

        Raises
        ------
        StoreError
            If the store has not been opened yet.
        """
        if self._connection is None:
            raise StoreError("SQLite store not opened. Call open() during startup.")
        return self._connection

    async def _fetch(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        db = self.connection
        try:
            cur = await db.execute(sql, params)
            rows = await cur.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(f"SQLite query error: {exc}") from exc
        return [dict(r) for r in rows]  # type: ignore[arg-type]
