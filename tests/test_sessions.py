"""Tests for wren.sessions.middleware: binding, persistence, cookie handling."""

from datetime import UTC, datetime, timedelta

import pytest

from wren.app import App
from wren.config import AppConfig
from wren.errors import ConfigurationError, StoreError
from wren.http.cookies import sign
from wren.sessions import (
    MemoryStore,
    SessionConfig,
    SessionMiddleware,
    SessionRecord,
    get_session,
)
from wren.testing import TestClient


class RecordingStore(MemoryStore):
    """MemoryStore that remembers every record it was asked to write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: list[SessionRecord] = []

    async def set(self, record: SessionRecord) -> None:
        self.writes.append(record.copy())
        await super().set(record)


class BrokenStore(MemoryStore):
    async def set(self, record: SessionRecord) -> None:
        msg = "disk full"
        raise StoreError(msg)


def _config(store=None, **overrides) -> SessionConfig:
    return SessionConfig(secret_key="s", store=store, sweep_interval=None, **overrides)


def _app(config: SessionConfig) -> App:
    app = App()
    app.use(SessionMiddleware(config))

    @app.get("/login")
    async def login(request, response, proceed):
        await request.session.set("user", "a")
        response.json({"sid": request.session.sid})

    @app.get("/whoami")
    def whoami(request, response, proceed):
        response.json({"user": request.session.get("user"), "sid": request.session.sid})

    return app


class TestPersistence:
    async def test_single_write_persists_with_expiry(self) -> None:
        store = RecordingStore()
        app = _app(_config(store, max_age=10_000))

        before = datetime.now(UTC)
        response = await TestClient(app).get("/login")
        after = datetime.now(UTC)

        assert response.status == 200
        (written,) = store.writes
        assert written.data["user"] == "a"
        assert written.sid == response.json()["sid"]
        assert written.expires is not None
        assert before + timedelta(seconds=10) <= written.expires <= after + timedelta(seconds=10)

    async def test_cookie_is_signed_sid(self) -> None:
        app = _app(_config(max_age=10_000))
        response = await TestClient(app).get("/login")
        sid = response.json()["sid"]
        cookie = response.set_cookie("wren.sid")
        assert cookie is not None
        assert cookie.startswith(sign("wren.sid", sid, "s"))
        assert "Max-Age=10" in cookie
        assert "Path=/" in cookie
        assert "HttpOnly" in cookie

    async def test_session_survives_across_requests(self) -> None:
        app = _app(_config())
        client = TestClient(app)
        login = await client.get("/login")
        whoami = await client.get("/whoami")
        assert whoami.json() == {"user": "a", "sid": login.json()["sid"]}

    async def test_read_only_request_writes_nothing(self) -> None:
        store = RecordingStore()
        app = _app(_config(store))
        response = await TestClient(app).get("/whoami")
        assert response.json()["user"] is None
        assert store.writes == []
        assert response.set_cookie("wren.sid") is None

    async def test_save_uninitialized(self) -> None:
        store = RecordingStore()
        app = _app(_config(store, save_uninitialized=True))
        response = await TestClient(app).get("/whoami")
        (written,) = store.writes
        assert written.sid == response.json()["sid"]
        assert response.set_cookie("wren.sid") is not None

    async def test_resave(self) -> None:
        store = RecordingStore()
        app = _app(_config(store, resave=True))
        client = TestClient(app)
        await client.get("/login")
        await client.get("/whoami")
        assert len(store.writes) == 2

    async def test_no_resave_by_default(self) -> None:
        store = RecordingStore()
        app = _app(_config(store))
        client = TestClient(app)
        await client.get("/login")
        await client.get("/whoami")
        assert len(store.writes) == 1

    async def test_update_and_delete(self) -> None:
        store = MemoryStore()
        app = App()
        app.use(SessionMiddleware(_config(store)))

        @app.get("/")
        async def index(request, response, proceed):
            session = get_session()
            await session.update({"a": 1}, b=2)
            await session.delete("a")
            response.json({"data": dict(session), "sid": session.sid})

        response = await TestClient(app).get("/")
        body = response.json()
        assert body["data"] == {"b": 2}
        record = await store.get(body["sid"])
        assert record is not None
        assert record.data == {"b": 2}


class TestCookieHandling:
    async def test_tampered_cookie_starts_new_session(self) -> None:
        store = MemoryStore()
        await store.set(SessionRecord(sid="victim", data={"user": "root"}))
        app = _app(_config(store))

        forged = sign("wren.sid", "victim", "not-the-secret")
        response = await TestClient(app).get("/whoami", headers={"cookie": forged})
        body = response.json()
        assert body["user"] is None
        assert body["sid"] != "victim"

    async def test_unknown_sid_reused_for_new_session(self) -> None:
        app = _app(_config())
        cookie = sign("wren.sid", "abc123", "s")
        response = await TestClient(app).get("/whoami", headers={"cookie": cookie})
        assert response.json() == {"user": None, "sid": "abc123"}

    async def test_custom_cookie_name(self) -> None:
        app = _app(_config(cookie_name="sess"))
        response = await TestClient(app).get("/login")
        assert response.set_cookie("sess") is not None
        assert response.set_cookie("wren.sid") is None


class TestDestroyAndRegenerate:
    async def test_destroy(self) -> None:
        store = MemoryStore()
        app = _app(_config(store))

        @app.get("/logout")
        async def logout(request, response, proceed):
            await request.session.destroy()
            response.send("bye")

        client = TestClient(app)
        sid = (await client.get("/login")).json()["sid"]
        assert sid in store

        response = await client.get("/logout")
        assert sid not in store
        assert "Expires=Thu, 01 Jan 1970" in (response.set_cookie("wren.sid") or "")
        assert client.cookies == {}
        assert len(store) == 0

    async def test_write_after_destroy_uses_new_sid(self) -> None:
        store = MemoryStore()
        app = _app(_config(store))

        @app.get("/reset")
        async def reset(request, response, proceed):
            old = request.session.sid
            await request.session.destroy()
            await request.session.set("fresh", True)
            response.json({"old": old, "new": request.session.sid})

        client = TestClient(app)
        await client.get("/login")
        body = (await client.get("/reset")).json()
        assert body["old"] != body["new"]
        assert body["old"] not in store
        record = await store.get(body["new"])
        assert record is not None
        assert record.data == {"fresh": True}

    async def test_regenerate(self) -> None:
        store = MemoryStore()
        app = _app(_config(store))

        @app.get("/elevate")
        async def elevate(request, response, proceed):
            old = request.session.sid
            await request.session.regenerate()
            response.json({"old": old, "new": request.session.sid})

        client = TestClient(app)
        await client.get("/login")
        body = (await client.get("/elevate")).json()
        assert body["old"] != body["new"]
        assert body["old"] not in store
        whoami = (await client.get("/whoami")).json()
        assert whoami == {"user": "a", "sid": body["new"]}


class TestAccessor:
    def test_get_session_outside_request(self) -> None:
        with pytest.raises(LookupError, match="No active session"):
            get_session()

    async def test_get_session_matches_request_session(self) -> None:
        app = App()
        app.use(SessionMiddleware(_config()))

        @app.get("/")
        def index(request, response, proceed):
            response.json({"same": get_session() is request.session})

        response = await TestClient(app).get("/")
        assert response.json() == {"same": True}

    async def test_data_is_read_only_view(self) -> None:
        app = App()
        app.use(SessionMiddleware(_config()))

        @app.get("/")
        def index(request, response, proceed):
            with pytest.raises(TypeError):
                request.session.data["x"] = 1  # type: ignore[index]
            response.json({"new": request.session.is_new, "modified": request.session.modified})

        response = await TestClient(app).get("/")
        assert response.json() == {"new": True, "modified": False}


class TestExpiryAndClear:
    async def test_set_expires_does_not_persist(self) -> None:
        store = RecordingStore()
        app = App()
        app.use(SessionMiddleware(_config(store)))
        fixed = datetime(2032, 3, 4)

        @app.get("/")
        def index(request, response, proceed):
            request.session.set_expires(fixed)
            response.json({"expires": request.session.expires.isoformat()})

        response = await TestClient(app).get("/")
        assert response.json() == {"expires": "2032-03-04T00:00:00+00:00"}
        assert store.writes == []

    async def test_next_write_recomputes_expiry(self) -> None:
        store = RecordingStore()
        app = App()
        app.use(SessionMiddleware(_config(store, max_age=60_000)))

        @app.get("/")
        async def index(request, response, proceed):
            request.session.set_expires(datetime(2000, 1, 1, tzinfo=UTC))
            await request.session.set("k", "v")
            response.send("ok")

        await TestClient(app).get("/")
        (written,) = store.writes
        assert written.expires is not None
        assert written.expires > datetime.now(UTC)

    async def test_clear(self) -> None:
        store = MemoryStore()
        app = _app(_config(store))

        @app.get("/clear")
        async def clear(request, response, proceed):
            await request.session.clear()
            response.json({"sid": request.session.sid})

        client = TestClient(app)
        await client.get("/login")
        sid = (await client.get("/clear")).json()["sid"]
        record = await store.get(sid)
        assert record is not None
        assert record.data == {}


class TestFailures:
    def test_empty_secret(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            SessionMiddleware(SessionConfig(secret_key=""))

    async def test_store_failure_is_500(self) -> None:
        app = _app(_config(BrokenStore()))
        response = await TestClient(app).get("/login")
        assert response.status == 500
        assert response.json() == {"message": "Internal Server Error", "error": "disk full"}

    def test_conflicting_app_secret(self) -> None:
        app = App(AppConfig(cookie_secret="other"))
        with pytest.raises(ConfigurationError):
            app.use(SessionMiddleware(_config()))


class TestConfig:
    def test_expiry_from_max_age(self) -> None:
        now = datetime(2030, 1, 1, tzinfo=UTC)
        config = _config(max_age=60_000)
        assert config.expiry(now) == now + timedelta(minutes=1)

    def test_absolute_expiry_wins(self) -> None:
        fixed = datetime(2031, 5, 1, tzinfo=UTC)
        config = _config(expires=fixed, max_age=60_000)
        assert config.expiry() == fixed

    def test_naive_expiry_treated_as_utc(self) -> None:
        config = _config(expires=datetime(2031, 5, 1))
        assert config.expiry() == datetime(2031, 5, 1, tzinfo=UTC)

    def test_no_expiry(self) -> None:
        assert _config().expiry() is None


class TestReaperLifecycle:
    async def test_reaper_runs_for_app_lifetime(self) -> None:
        middleware = SessionMiddleware(SessionConfig(secret_key="s", sweep_interval=60))
        app = App()
        app.use(middleware)
        assert middleware.reaper is not None

        async with TestClient(app):
            assert middleware.reaper.running
        assert not middleware.reaper.running

    def test_sweep_disabled(self) -> None:
        assert SessionMiddleware(_config()).reaper is None


class TestDuplicateRoutes:
    async def test_matching_routes_share_one_session(self) -> None:
        store = RecordingStore()
        app = App()
        app.use(SessionMiddleware(_config(store)))

        @app.get("/x")
        async def first(request, response, proceed):
            await request.session.set("a", 1)
            await proceed()

        @app.get("/x")
        async def second(request, response, proceed):
            await request.session.set("b", 2)
            response.json({"sid": request.session.sid})

        response = await TestClient(app).get("/x")
        assert response.status == 200
        sid = response.json()["sid"]
        assert len(store) == 1
        record = await store.get(sid)
        assert record is not None
        assert record.data == {"a": 1, "b": 2}
        assert [c for c in response.set_cookies if c.startswith("wren.sid=")] == [
            response.set_cookie("wren.sid")
        ]
