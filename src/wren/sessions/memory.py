"""In-memory session store.

A process-local ``sid -> SessionRecord`` dict. Nothing survives a restart
and nothing is shared between worker processes, so it suits development
and tests. Records go in and come out as copies.

All access happens on the event loop thread; there are no awaits between
reading and writing the dict, so operations are atomic with respect to
other requests.
"""

import logging

from wren.sessions.store import SessionRecord, utcnow

logger = logging.getLogger("wren.sessions")


class MemoryStore:
    """Dict-backed ``SessionStore``."""

    __slots__ = ("_records",)

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, sid: object) -> bool:
        return sid in self._records

    async def get(self, sid: str) -> SessionRecord | None:
        record = self._records.get(sid)
        if record is None:
            return None
        return record.copy()

    async def set(self, record: SessionRecord) -> None:
        stored = record.copy()
        previous = self._records.get(record.sid)
        if stored.modified is None and previous is not None:
            stored.modified = previous.modified
        self._records[record.sid] = stored

    async def destroy(self, sid: str) -> None:
        self._records.pop(sid, None)

    async def clean_up_expired_sessions(self) -> int:
        now = utcnow()
        expired = [sid for sid, record in self._records.items() if record.is_expired(now)]
        for sid in expired:
            del self._records[sid]
        if expired:
            logger.debug("Swept %d expired session(s) from memory", len(expired))
        return len(expired)
