"""Tests for wren.sessions.reaper.SessionReaper."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import pytest

from wren.sessions import MemoryStore, SessionReaper, SessionRecord


class FlakyStore(MemoryStore):
    """Fails the first sweep, then behaves."""

    def __init__(self) -> None:
        super().__init__()
        self.sweeps = 0

    async def clean_up_expired_sessions(self) -> int:
        self.sweeps += 1
        if self.sweeps == 1:
            msg = "database locked"
            raise RuntimeError(msg)
        return await super().clean_up_expired_sessions()


class TestSweepOnce:
    async def test_removes_expired(self) -> None:
        store = MemoryStore()
        await store.set(
            SessionRecord(sid="old", expires=datetime.now(UTC) - timedelta(seconds=1))
        )
        assert await SessionReaper(store).sweep_once() == 1
        assert "old" not in store

    async def test_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        reaper = SessionReaper(FlakyStore())
        with caplog.at_level(logging.ERROR, logger="wren.sessions"):
            assert await reaper.sweep_once() == 0
        assert "Expired session sweep failed" in caplog.text


class TestLoop:
    async def test_keeps_running_after_failure(self) -> None:
        store = FlakyStore()
        reaper = SessionReaper(store, interval=0.01)
        reaper.start()
        try:
            for _ in range(100):
                if store.sweeps >= 3:
                    break
                await asyncio.sleep(0.01)
        finally:
            await reaper.stop()
        assert store.sweeps >= 3

    async def test_start_is_idempotent(self) -> None:
        reaper = SessionReaper(MemoryStore(), interval=60)
        reaper.start()
        reaper.start()
        assert reaper.running
        await reaper.stop()
        assert not reaper.running

    async def test_stop_without_start(self) -> None:
        await SessionReaper(MemoryStore()).stop()

    def test_interval_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            SessionReaper(MemoryStore(), interval=0)
