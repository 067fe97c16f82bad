"""Session middleware: signed session ids backed by a store.

The client holds only the session id, signed with ``secret_key``. The
data lives in a ``SessionStore``. Every write through the ``Session``
accessor recomputes the expiry, re-issues the signed cookie and flushes
the whole record to the store before returning, so a handler that awaits
a write can rely on it being persisted.

Usage::

    from wren.sessions import SessionConfig, SessionMiddleware, get_session

    app.use(SessionMiddleware(SessionConfig(secret_key="change-me", max_age=3_600_000)))

    @app.route("/visit")
    async def visit(request, response, proceed):
        session = get_session()
        await session.set("visits", session.get("visits", 0) + 1)
        response.json({"visits": session["visits"]})
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterator, Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import Any

from wren.errors import ConfigurationError, StoreError
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Proceed
from wren.sessions.memory import MemoryStore
from wren.sessions.reaper import SessionReaper
from wren.sessions.store import SessionRecord, SessionStore, utcnow

logger = logging.getLogger("wren.sessions")

_session_var: ContextVar[Session | None] = ContextVar("wren_session", default=None)


def get_session() -> Session:
    """Return the session bound to the current request.

    Raises ``LookupError`` outside a request handled by ``SessionMiddleware``.
    """
    session = _session_var.get()
    if session is None:
        msg = (
            "No active session. Ensure SessionMiddleware is registered "
            "before the handler that accesses the session."
        )
        raise LookupError(msg)
    return session


def new_sid() -> str:
    return secrets.token_hex(16)


# -- Configuration --


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session middleware configuration.

    ``secret_key`` is required: it signs the session id cookie.
    ``expires`` is an absolute expiry and wins over ``max_age``, which is
    relative and in milliseconds. With neither, sessions never expire in
    the store and the cookie lasts for the browser session.
    """

    secret_key: str
    cookie_name: str = "wren.sid"
    expires: datetime | None = None
    max_age: int | None = None
    domain: str | None = None
    path: str | None = "/"
    secure: bool = False
    httponly: bool = True
    samesite: str | None = None
    store: SessionStore | None = None
    resave: bool = False
    save_uninitialized: bool = False
    sweep_interval: float | None = 10.0

    def expiry(self, now: datetime | None = None) -> datetime | None:
        if self.expires is not None:
            if self.expires.tzinfo is None:
                return self.expires.replace(tzinfo=UTC)
            return self.expires
        if self.max_age is not None:
            return (now or utcnow()) + timedelta(milliseconds=self.max_age)
        return None


# -- Accessor --


class Session(Mapping[str, Any]):
    """Request-scoped view of one session record.

    Reads go straight to the record. Writes only happen through the async
    methods, each of which persists before returning. Values read out of
    the session are live: mutating a nested list or dict in place is not
    seen by the store until the next write.
    """

    __slots__ = ("_config", "_destroyed", "_is_new", "_record", "_response", "_store", "_touched")

    def __init__(
        self,
        record: SessionRecord,
        *,
        store: SessionStore,
        response: Response,
        config: SessionConfig,
        is_new: bool,
    ) -> None:
        self._record = record
        self._store = store
        self._response = response
        self._config = config
        self._is_new = is_new
        self._touched = False
        self._destroyed = False

    def __repr__(self) -> str:
        return f"<Session {self._record.sid[:8]}... keys={sorted(self._record.data)}>"

    # -- Reads --

    def __getitem__(self, key: str) -> Any:
        return self._record.data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._record.data)

    def __len__(self) -> int:
        return len(self._record.data)

    @property
    def sid(self) -> str:
        return self._record.sid

    @property
    def data(self) -> Mapping[str, Any]:
        return MappingProxyType(self._record.data)

    @property
    def expires(self) -> datetime | None:
        return self._record.expires

    @property
    def is_new(self) -> bool:
        """True until the record has been written to the store."""
        return self._is_new

    @property
    def modified(self) -> bool:
        """True once any write has gone through this accessor."""
        return self._touched

    # -- Writes --

    async def set(self, key: str, value: Any) -> None:
        self._record.data[key] = value
        await self._flush()

    async def delete(self, key: str) -> None:
        """Remove *key*. Raises ``KeyError`` if it is absent."""
        del self._record.data[key]
        await self._flush()

    async def update(self, values: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        """Write several keys with a single flush."""
        self._record.data.update(values or {}, **kwargs)
        await self._flush()

    async def clear(self) -> None:
        self._record.data.clear()
        await self._flush()

    def set_expires(self, value: datetime | None) -> None:
        """Override the record's expiry without persisting.

        The next write recomputes the expiry from the configured policy.
        """
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        self._record.expires = value

    async def destroy(self) -> None:
        """Delete the record and the cookie.

        Writes after ``destroy()`` start a new session under a fresh id.
        """
        await self._store.destroy(self._record.sid)
        self._response.delete_cookie(self._config.cookie_name)
        self._record = SessionRecord(sid=new_sid(), expires=self._config.expiry())
        self._is_new = True
        self._destroyed = True

    async def regenerate(self) -> None:
        """Move the data to a fresh session id and drop the old record.

        Call after a privilege change (login) to defeat session fixation.
        """
        old_sid = self._record.sid
        self._record = SessionRecord(sid=new_sid(), data=self._record.data)
        await self._store.destroy(old_sid)
        await self._flush()

    async def save(self) -> None:
        """Persist the record as it stands and re-issue the cookie."""
        await self._flush()

    async def _flush(self) -> None:
        cfg = self._config
        record = self._record
        record.expires = cfg.expiry()
        record.modified = utcnow()
        self._response.signed_cookie(
            cfg.cookie_name,
            record.sid,
            cfg.secret_key,
            expires=cfg.expires,
            max_age=cfg.max_age,
            domain=cfg.domain,
            path=cfg.path,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )
        await self._store.set(record)
        self._touched = True
        self._is_new = False

    async def _finish(self) -> None:
        """End-of-request persistence for sessions nobody wrote to."""
        if self._touched or (self._destroyed and self._is_new):
            return
        if self._is_new and self._config.save_uninitialized:
            await self._flush()
        elif not self._is_new and self._config.resave:
            await self._flush()


# -- Middleware --


class SessionMiddleware:
    """Binds a ``Session`` to every request that passes through it.

    The id comes from the signed session cookie; a missing or tampered
    cookie yields a fresh id. Store failures are logged and answered with
    a 500 JSON response; the rest of the chain does not run.

    Register it with ``App.use()``: the app then verifies signed request
    cookies with this middleware's ``secret_key``, and runs the expired
    session sweep for the app's lifetime.
    """

    __slots__ = ("_config", "_reaper", "_store")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._store: SessionStore = config.store if config.store is not None else MemoryStore()
        self._reaper = (
            SessionReaper(self._store, config.sweep_interval)
            if config.sweep_interval is not None
            else None
        )

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def secret_key(self) -> str:
        return self._config.secret_key

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def reaper(self) -> SessionReaper | None:
        return self._reaper

    # -- Lifecycle --

    async def startup(self) -> None:
        if self._reaper is not None:
            self._reaper.start()

    async def shutdown(self) -> None:
        if self._reaper is not None:
            await self._reaper.stop()
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()

    # -- Request handling --

    async def _bind(self, request: Request, response: Response) -> Session:
        sid = request.cookies.get_signed(self._config.cookie_name)
        record = await self._store.get(sid) if sid else None
        if record is not None:
            return Session(
                record, store=self._store, response=response, config=self._config, is_new=False
            )
        fresh = SessionRecord(sid=sid or new_sid(), expires=self._config.expiry())
        return Session(
            fresh, store=self._store, response=response, config=self._config, is_new=True
        )

    def _fail(self, response: Response, exc: Exception) -> None:
        logger.error("Session middleware error: %s", exc)
        if not response.sent:
            response.status(500).json({"message": "Internal Server Error", "error": str(exc)})

    async def __call__(self, request: Request, response: Response, proceed: Proceed) -> None:
        if self._reaper is not None and not self._reaper.running:
            self._reaper.start()

        # Duplicate routes run this middleware once per matching pipeline;
        # they all share the session bound by the first one.
        session = request.session
        if not isinstance(session, Session) or session._config is not self._config:
            try:
                session = await self._bind(request, response)
            except StoreError as exc:
                self._fail(response, exc)
                return

        request.session = session
        token = _session_var.set(session)
        try:
            await proceed()
            await session._finish()
        except StoreError as exc:
            self._fail(response, exc)
        finally:
            _session_var.reset(token)
