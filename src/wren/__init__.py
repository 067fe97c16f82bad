"""Wren: a small ASGI framework with middleware chains and server-side sessions.

Basic usage::

    from wren import App, SessionConfig, SessionMiddleware

    app = App()
    app.use(SessionMiddleware(SessionConfig(secret_key="change-me", max_age=86_400_000)))

    @app.get("/users/:id")
    async def show(request, response, proceed):
        await request.session.set("last_viewed", request.params["id"])
        response.json({"id": request.params["id"]})

Durable sessions::

    from wren.sessions import DatabaseStore
    store = DatabaseStore("sqlite:///sessions.db")
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "LocalAuth",
    "NotFound",
    "Proceed",
    "Request",
    "Response",
    "Router",
    "SessionConfig",
    "SessionMiddleware",
    "StoreError",
    "ValidationError",
    "WrenError",
    "get_request",
    "get_session",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the top-level API.

    Keeps ``import wren`` cheap while providing a flat public surface.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name == "Response":
        from wren.http.response import Response

        return Response

    if name == "Router":
        from wren.routing.router import Router

        return Router

    if name == "Proceed":
        from wren.middleware.protocol import Proceed

        return Proceed

    if name in ("SessionConfig", "SessionMiddleware", "get_session"):
        from wren.sessions import middleware as _sessions

        return getattr(_sessions, name)

    if name == "LocalAuth":
        from wren.security.local_auth import LocalAuth

        return LocalAuth

    if name == "get_request":
        from wren.context import get_request

        return get_request

    if name in (
        "ConfigurationError",
        "HTTPError",
        "NotFound",
        "StoreError",
        "ValidationError",
        "WrenError",
    ):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
