"""Tests for wren.security.local_auth.LocalAuth."""

from dataclasses import dataclass

import pytest

from wren.app import App
from wren.errors import AuthenticationError, ConfigurationError
from wren.security import LocalAuth
from wren.security.passwords import _hash_scrypt
from wren.sessions import SessionConfig, SessionMiddleware
from wren.testing import TestClient

# Computed once: scrypt is deliberately slow
_HASH = _hash_scrypt("secret")


@dataclass
class User:
    id: int
    username: str
    password_hash: str


class Users:
    def __init__(self) -> None:
        self._users = {1: User(1, "alice", _HASH)}

    def find_by_username(self, username):
        return next((u for u in self._users.values() if u.username == username), None)

    async def find_by_id(self, user_id):
        return self._users.get(user_id)


def _app(auth: LocalAuth) -> App:
    app = App()
    app.use(SessionMiddleware(SessionConfig(secret_key="s", sweep_interval=None)))
    app.use(auth.initialize())

    def welcome(request, response, proceed):
        response.json({"user": request.user.username})

    app.post("/login", auth.authenticate(), welcome)

    @app.get("/me")
    def me(request, response, proceed):
        user = request.user
        response.json({"user": user.username if user else None})

    return app


class TestAuthenticate:
    async def test_success(self) -> None:
        client = TestClient(_app(LocalAuth(Users())))
        response = await client.post("/login", form={"username": "alice", "password": "secret"})
        assert response.status == 200
        assert response.json() == {"user": "alice"}
        assert "wren.sid" in client.cookies

    async def test_session_loads_user_on_later_requests(self) -> None:
        client = TestClient(_app(LocalAuth(Users())))
        await client.post("/login", form={"username": "alice", "password": "secret"})
        response = await client.get("/me")
        assert response.json() == {"user": "alice"}

    async def test_anonymous(self) -> None:
        response = await TestClient(_app(LocalAuth(Users()))).get("/me")
        assert response.json() == {"user": None}

    @pytest.mark.parametrize(
        "form",
        [{"username": "alice"}, {"password": "secret"}, {"username": "", "password": "x"}],
    )
    async def test_missing_credentials(self, form: dict[str, str]) -> None:
        response = await TestClient(_app(LocalAuth(Users()))).post("/login", form=form)
        assert response.status == 400
        assert response.json() == {"error": "Username and password are required."}

    @pytest.mark.parametrize(
        "body",
        [
            b"username=alice&username=bob&password=secret",
            b"username=alice&password=secret&password=secret",
        ],
    )
    async def test_repeated_credentials(self, body: bytes) -> None:
        users = Users()
        seen = []
        lookup = users.find_by_username

        def find_by_username(username):
            seen.append(username)
            return lookup(username)

        users.find_by_username = find_by_username  # type: ignore[method-assign]
        client = TestClient(_app(LocalAuth(users)))
        response = await client.post(
            "/login",
            body=body,
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        assert response.status == 400
        assert response.json() == {"error": "Username and password must be single values."}
        assert seen == []
        assert "wren.sid" not in client.cookies

    async def test_wrong_password(self) -> None:
        client = TestClient(_app(LocalAuth(Users())))
        response = await client.post("/login", form={"username": "alice", "password": "nope"})
        assert response.status == 401
        assert response.json() == {"error": "Invalid password."}
        assert "wren.sid" not in client.cookies

    async def test_unknown_user(self) -> None:
        response = await TestClient(_app(LocalAuth(Users()))).post(
            "/login", form={"username": "bob", "password": "secret"}
        )
        assert response.status == 401
        assert response.json() == {"error": "User not found."}

    async def test_custom_callbacks(self) -> None:
        def verify(model, username, password):
            if password != "open sesame":
                msg = "Nope."
                raise AuthenticationError(msg)
            return User(7, username, "")

        lookup = {}

        def serialize(user):
            lookup[user.id] = user
            return user.id

        def deserialize(model, user_id):
            return lookup[user_id]

        auth = LocalAuth(Users(), verify=verify, serialize=serialize, deserialize=deserialize)
        client = TestClient(_app(auth))
        response = await client.post("/login", form={"username": "zed", "password": "open sesame"})
        assert response.json() == {"user": "zed"}

    async def test_requires_session_middleware(self) -> None:
        auth = LocalAuth(Users())
        app = App()
        app.post("/login", auth.authenticate(), lambda req, res, proceed: res.send("ok"))
        response = await TestClient(app).post(
            "/login", form={"username": "alice", "password": "secret"}
        )
        assert response.status == 500


class TestInitialize:
    async def test_failed_lookup_is_500(self) -> None:
        users = Users()
        client = TestClient(_app(LocalAuth(users)))
        await client.post("/login", form={"username": "alice", "password": "secret"})

        users._users.clear()
        response = await client.get("/me")
        assert response.status == 500
        assert response.json() == {"error": "User 1 not found."}


class TestConstruction:
    def test_non_callable_override(self) -> None:
        with pytest.raises(TypeError, match="Expected a callable for verify"):
            LocalAuth(Users(), verify="nope")  # type: ignore[arg-type]

    def test_missing_model(self) -> None:
        with pytest.raises(ConfigurationError):
            LocalAuth(None)

    def test_user_model_protocol(self) -> None:
        from wren.security import UserModel

        assert isinstance(Users(), UserModel)
