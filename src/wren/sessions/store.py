"""Session record and the store protocol.

Every store backend implements the same four async operations. Contract:

- ``get(sid)`` returns the record or ``None``. It never checks expiry;
  expired records stay readable until the next sweep.
- ``set(record)`` upserts by ``sid``. ``data`` and ``expires`` are always
  overwritten; ``modified`` only when the record carries one.
- ``destroy(sid)`` is idempotent.
- ``clean_up_expired_sessions()`` deletes records whose ``expires`` is
  strictly before now. Records with ``expires is None`` never expire.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable


def utcnow() -> datetime:
    """Timezone-aware current time, the clock every store compares against."""
    return datetime.now(UTC)


@dataclass(slots=True)
class SessionRecord:
    """A session as persisted by a store."""

    sid: str
    data: dict[str, Any] = field(default_factory=dict)
    expires: datetime | None = None
    modified: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """True when ``expires`` is set and strictly before *now*."""
        if self.expires is None:
            return False
        return self.expires < (now or utcnow())

    def copy(self) -> SessionRecord:
        """Deep copy, so callers and stores never share ``data``."""
        return SessionRecord(
            sid=self.sid,
            data=copy.deepcopy(self.data),
            expires=self.expires,
            modified=self.modified,
        )


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for session store backends."""

    async def get(self, sid: str) -> SessionRecord | None: ...

    async def set(self, record: SessionRecord) -> None: ...

    async def destroy(self, sid: str) -> None: ...

    async def clean_up_expired_sessions(self) -> int: ...
