"""Durable session store over ``wren.data.Database``.

One row per session. ``data`` is a JSON document; ``expires`` and
``modified`` are epoch seconds. ``version``, ``created_at`` and
``updated_at`` are bookkeeping columns maintained by the store and never
returned from ``get``.

Usage::

    store = DatabaseStore("sqlite:///sessions.db")
    app.use(SessionMiddleware(SessionConfig(secret_key=..., store=store)))
"""

import json
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from wren.data import Database, DataError
from wren.errors import ConfigurationError, StoreError
from wren.sessions.store import SessionRecord, utcnow

logger = logging.getLogger("wren.sessions")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True, slots=True)
class _SessionRow:
    sid: str
    data: str
    expires: float | None = None
    modified: float | None = None


def _to_epoch(value: datetime | None) -> float | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.timestamp()


def _from_epoch(value: float | None) -> datetime | None:
    return None if value is None else datetime.fromtimestamp(value, UTC)


class DatabaseStore:
    """``SessionStore`` persisted in SQLite or PostgreSQL.

    Args:
        db: A ``Database`` or a connection URL. A store built from a URL
            owns its database and closes it in ``close()``.
        table: Table name. Created on first use if missing.
    """

    __slots__ = ("_db", "_owns_db", "_ready", "_table")

    def __init__(self, db: Database | str, *, table: str = "wren_sessions") -> None:
        if not _IDENTIFIER.match(table):
            msg = f"Invalid session table name {table!r}."
            raise ConfigurationError(msg)
        self._owns_db = isinstance(db, str)
        self._db = Database(db) if isinstance(db, str) else db
        self._table = table
        self._ready = False

    @property
    def database(self) -> Database:
        return self._db

    def _p(self, n: int) -> str:
        return self._db.placeholder(n)

    async def create_table(self) -> None:
        """Create the sessions table and its expiry index if missing."""
        t = self._table
        await self._db.execute_script(
            f"CREATE TABLE IF NOT EXISTS {t} ("
            " sid TEXT PRIMARY KEY,"
            " data TEXT NOT NULL,"
            " expires DOUBLE PRECISION,"
            " modified DOUBLE PRECISION,"
            " version INTEGER NOT NULL DEFAULT 0,"
            " created_at DOUBLE PRECISION NOT NULL,"
            " updated_at DOUBLE PRECISION NOT NULL"
            f"); CREATE INDEX IF NOT EXISTS {t}_expires_idx ON {t} (expires)"
        )
        self._ready = True

    async def _run[T](
        self, action: str, sid: str | None, op: Callable[[], Awaitable[T]]
    ) -> T:
        try:
            if not self._ready:
                await self.create_table()
            return await op()
        except DataError as exc:
            logger.error("Session store %s failed (sid=%s): %s", action, sid, exc)
            msg = f"Session store {action} failed: {exc}"
            raise StoreError(msg) from exc

    async def get(self, sid: str) -> SessionRecord | None:
        async def op() -> _SessionRow | None:
            return await self._db.fetch_one(
                _SessionRow,
                f"SELECT sid, data, expires, modified FROM {self._table} WHERE sid = {self._p(1)}",
                sid,
            )

        row: _SessionRow | None = await self._run("read", sid, op)
        if row is None:
            return None
        return SessionRecord(
            sid=row.sid,
            data=json.loads(row.data),
            expires=_from_epoch(row.expires),
            modified=_from_epoch(row.modified),
        )

    async def set(self, record: SessionRecord) -> None:
        try:
            document = json.dumps(record.data)
        except (TypeError, ValueError) as exc:
            msg = f"Session {record.sid!r} holds data that is not JSON serializable: {exc}"
            raise StoreError(msg) from exc

        t, p = self._table, self._p
        sql = (
            f"INSERT INTO {t} (sid, data, expires, modified, version, created_at, updated_at)"
            f" VALUES ({p(1)}, {p(2)}, {p(3)}, {p(4)}, 0, {p(5)}, {p(6)})"
            " ON CONFLICT (sid) DO UPDATE SET"
            " data = excluded.data,"
            " expires = excluded.expires,"
            f" modified = COALESCE(excluded.modified, {t}.modified),"
            f" version = {t}.version + 1,"
            " updated_at = excluded.updated_at"
        )

        now = utcnow().timestamp()

        async def op() -> int:
            return await self._db.execute(
                sql,
                record.sid,
                document,
                _to_epoch(record.expires),
                _to_epoch(record.modified),
                now,
                now,
            )

        await self._run("write", record.sid, op)

    async def destroy(self, sid: str) -> None:
        async def op() -> int:
            return await self._db.execute(
                f"DELETE FROM {self._table} WHERE sid = {self._p(1)}", sid
            )

        await self._run("destroy", sid, op)

    async def clean_up_expired_sessions(self) -> int:
        async def op() -> int:
            return await self._db.execute(
                f"DELETE FROM {self._table} WHERE expires IS NOT NULL AND expires < {self._p(1)}",
                utcnow().timestamp(),
            )

        removed: int = await self._run("sweep", None, op)
        if removed:
            logger.debug("Swept %d expired session(s) from %s", removed, self._table)
        return removed

    async def close(self) -> None:
        """Disconnect the database if this store opened it."""
        if self._owns_db:
            await self._db.disconnect()
