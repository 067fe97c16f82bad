"""SQLite access from async code via stdlib ``sqlite3`` + ``anyio``.

Each call runs a whole statement in a worker thread, fetching rows
before returning, so no cursor ever crosses back to the event loop.
The connection is opened with ``autocommit=True``: every statement
commits on its own.

``check_same_thread=False`` is required because ``anyio.to_thread``
may dispatch consecutive calls to different pool threads. The owning
``Database`` serializes access with a lock.
"""

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import anyio


@dataclass(frozen=True, slots=True)
class Result:
    """Rows and affected count of one statement."""

    columns: tuple[str, ...]
    rows: list[tuple[Any, ...]]
    rowcount: int

    def dicts(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, row, strict=True)) for row in self.rows]


class SQLiteConnection:
    """Async facade over one ``sqlite3.Connection``."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    async def run(self, sql: str, params: Sequence[Any] = ()) -> Result:
        def _run() -> Result:
            cursor = self._conn.execute(sql, params)
            try:
                rows = cursor.fetchall() if cursor.description else []
                columns = tuple(d[0] for d in cursor.description or ())
                return Result(columns=columns, rows=rows, rowcount=cursor.rowcount)
            finally:
                cursor.close()

        return await anyio.to_thread.run_sync(_run)

    async def script(self, sql: str) -> None:
        await anyio.to_thread.run_sync(self._conn.executescript, sql)

    async def close(self) -> None:
        await anyio.to_thread.run_sync(self._conn.close)


async def connect(path: str) -> SQLiteConnection:
    """Open *path* (or ``:memory:``) with WAL journaling and foreign keys on."""

    def _open() -> sqlite3.Connection:
        conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    return SQLiteConnection(await anyio.to_thread.run_sync(_open))
