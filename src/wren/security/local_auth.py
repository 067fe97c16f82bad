"""Username/password authentication on top of sessions.

``LocalAuth`` wraps three callbacks:

- ``verify(user_model, username, password) -> user``
- ``serialize(user) -> id``
- ``deserialize(user_model, id) -> user``

Each may be sync or async and signals failure by raising
``AuthenticationError``; other exceptions propagate. The defaults
expect a user model with ``find_by_username`` and ``find_by_id`` lookups
and users carrying ``id`` and ``password_hash`` attributes.

Usage::

    auth = LocalAuth(users)

    app.use(SessionMiddleware(SessionConfig(secret_key="...")))
    app.use(auth.initialize())

    app.post("/login", auth.authenticate(), welcome)
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from wren._internal.invoke import invoke
from wren.errors import AuthenticationError, ConfigurationError
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import HandlerFunc, Proceed
from wren.security.passwords import verify_password

logger = logging.getLogger("wren.security")

# Session key holding the serialized user id
USER_ID_KEY = "userId"


@runtime_checkable
class UserModel(Protocol):
    """Lookups the default callbacks need. Either may be sync or async."""

    def find_by_username(self, username: str) -> Any: ...

    def find_by_id(self, user_id: Any) -> Any: ...


async def default_verify(user_model: UserModel, username: str, password: str) -> Any:
    user = await invoke(user_model.find_by_username, username)
    if user is None:
        msg = "User not found."
        raise AuthenticationError(msg)
    password_hash = getattr(user, "password_hash", None)
    if not password_hash:
        msg = "User has no password hash."
        raise AuthenticationError(msg)
    if not verify_password(password, password_hash):
        msg = "Invalid password."
        raise AuthenticationError(msg)
    return user


def default_serialize(user: Any) -> Any:
    user_id = getattr(user, "id", None)
    if user_id is None:
        msg = "Cannot serialize user: no id found."
        raise AuthenticationError(msg)
    return user_id


async def default_deserialize(user_model: UserModel, user_id: Any) -> Any:
    user = await invoke(user_model.find_by_id, user_id)
    if user is None:
        msg = f"User {user_id!r} not found."
        raise AuthenticationError(msg)
    return user


class LocalAuth:
    """Credential verification plus session-backed user loading.

    Raises ``ConfigurationError`` when *user_model* is missing and
    ``TypeError`` when an override is given but not callable.
    """

    __slots__ = ("_deserialize", "_serialize", "_verify", "user_model")

    def __init__(
        self,
        user_model: Any,
        *,
        verify: Callable[..., Any] | None = None,
        serialize: Callable[..., Any] | None = None,
        deserialize: Callable[..., Any] | None = None,
    ) -> None:
        overrides = {"verify": verify, "serialize": serialize, "deserialize": deserialize}
        for name, func in overrides.items():
            if func is not None and not callable(func):
                msg = f"Expected a callable for {name}, got {type(func).__name__} instead."
                raise TypeError(msg)
        if user_model is None:
            msg = "LocalAuth needs a user model."
            raise ConfigurationError(msg)

        self.user_model = user_model
        self._verify = verify or default_verify
        self._serialize = serialize or default_serialize
        self._deserialize = deserialize or default_deserialize

    async def verify(self, username: str, password: str) -> Any:
        return await invoke(self._verify, self.user_model, username, password)

    async def serialize(self, user: Any) -> Any:
        return await invoke(self._serialize, user)

    async def deserialize(self, user_id: Any) -> Any:
        return await invoke(self._deserialize, self.user_model, user_id)

    def initialize(self) -> HandlerFunc:
        """Middleware that loads ``request.user`` from the session's user id.

        Requests without a session or without a stored id pass through
        untouched. A failing lookup answers 500.
        """

        async def initialize(request: Request, response: Response, proceed: Proceed) -> None:
            session = request.session
            user_id = session.get(USER_ID_KEY) if session is not None else None
            if user_id is not None:
                try:
                    request.user = await self.deserialize(user_id)
                except Exception as exc:
                    logger.warning("Could not load user %r: %s", user_id, exc)
                    response.status(500).json({"error": str(exc)})
                    return
            await proceed()

        return initialize

    def authenticate(self) -> HandlerFunc:
        """Middleware that checks ``username``/``password`` body fields.

        400 when either field is missing or repeated, 401 when verification
        fails.
        On success the user id goes into the session and the user onto
        ``request.user``.
        """

        async def authenticate(request: Request, response: Response, proceed: Proceed) -> None:
            username = request.fields.get("username")
            password = request.fields.get("password")
            if not username or not password:
                response.status(400).json({"error": "Username and password are required."})
                return
            if not isinstance(username, str) or not isinstance(password, str):
                response.status(400).json({"error": "Username and password must be single values."})
                return
            if request.session is None:
                msg = "LocalAuth.authenticate() requires SessionMiddleware before it."
                raise ConfigurationError(msg)

            try:
                user = await self.verify(username, password)
                user_id = await self.serialize(user)
                await request.session.set(USER_ID_KEY, user_id)
                request.user = await self.deserialize(user_id)
            except AuthenticationError as exc:
                logger.info("Authentication failed for %r: %s", username, exc)
                response.status(401).json({"error": str(exc)})
                return
            await proceed()

        return authenticate
