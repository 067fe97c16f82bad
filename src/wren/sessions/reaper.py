"""Periodic sweep of expired sessions.

Runs ``store.clean_up_expired_sessions()`` every *interval* seconds in a
background asyncio task. A failing sweep is logged and the loop keeps
going; the next tick tries again.
"""

import asyncio
import contextlib
import logging

from wren.sessions.store import SessionStore

logger = logging.getLogger("wren.sessions")


class SessionReaper:
    """Background task that removes expired sessions from a store."""

    __slots__ = ("_interval", "_store", "_task")

    def __init__(self, store: SessionStore, interval: float = 10.0) -> None:
        if interval <= 0:
            msg = f"Sweep interval must be positive, got {interval!r}"
            raise ValueError(msg)
        self._store = store
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int:
        """Run one sweep. Returns the number of removed sessions, 0 on failure."""
        try:
            return await self._store.clean_up_expired_sessions()
        except Exception:
            logger.exception("Expired session sweep failed")
            return 0

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.sweep_once()

    def start(self) -> None:
        """Start sweeping. Must be called from a running event loop. Idempotent."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name="wren-session-reaper"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
