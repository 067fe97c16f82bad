"""Server-side sessions: signed id cookie, pluggable store, background sweep."""

from wren.sessions.database import DatabaseStore
from wren.sessions.memory import MemoryStore
from wren.sessions.middleware import Session, SessionConfig, SessionMiddleware, get_session
from wren.sessions.reaper import SessionReaper
from wren.sessions.store import SessionRecord, SessionStore

__all__ = [
    "DatabaseStore",
    "MemoryStore",
    "Session",
    "SessionConfig",
    "SessionMiddleware",
    "SessionReaper",
    "SessionRecord",
    "SessionStore",
    "get_session",
]
