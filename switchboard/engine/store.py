"""Direct access to the driven CLI's SQLite store.

Statements are always parameterized and run in a worker thread so the
event loop never blocks on the database. The client only opens an
existing store file; it never creates one.
"""
from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from collections.abc import Sequence
from contextlib import closing
from pathlib import Path
from typing import Any

from .errors import StoreClientError

logger = logging.getLogger(__name__)

Statement = tuple[str, Sequence[Any]]

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class StoreClient:
    """Runs statements against one store file."""

    def __init__(self, db_path: str | Path, busy_timeout: float = 5.0) -> None:
        self._db_path = Path(db_path).expanduser()
        self._busy_timeout = busy_timeout

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        uri = self._db_path.resolve().as_uri() + "?mode=rw"
        conn = sqlite3.connect(uri, uri=True, timeout=self._busy_timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _run_batch(self, statements: Sequence[Statement]) -> int:
        with closing(self._connect()) as conn:
            changed = 0
            with conn:
                for sql, params in statements:
                    changed += conn.execute(sql, tuple(params)).rowcount
            return changed

    def _query(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        with closing(self._connect()) as conn:
            rows = conn.execute(sql, tuple(params)).fetchall()
            return [dict(row) for row in rows]

    async def _call(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as exc:
            logger.error("Store error on %s: %s", self._db_path, exc)
            raise StoreClientError(str(self._db_path), str(exc)) from exc

    async def run(self, statements: Sequence[Statement]) -> int:
        """Execute *statements* in one transaction; returns rows changed."""
        return await self._call(self._run_batch, list(statements))

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return await self.run([(sql, params)])

    async def fetch_all(
        self, sql: str, params: Sequence[Any] = ()
    ) -> list[dict[str, Any]]:
        return await self._call(self._query, sql, params)

    async def fetch_one(
        self, sql: str, params: Sequence[Any] = ()
    ) -> dict[str, Any] | None:
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None

    async def columns(self, table: str) -> list[str]:
        if not _TABLE_NAME_RE.match(table):
            raise StoreClientError(str(self._db_path), f"bad table name {table!r}")
        rows = await self.fetch_all(f"PRAGMA table_info({table})")
        return [row["name"] for row in rows]
