"""Wren exception hierarchy.

Shared across Router, App, handler pipeline, sessions, and stores so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when app or middleware configuration is invalid.

    Always raised at setup time (constructing middleware, registering
    routes, freezing the app) so a misconfigured app never starts serving.
    """


class ValidationError(WrenError):
    """Raised when caller input is incomplete.

    Examples: a cookie without a key or value, a signed cookie without
    a secret key.
    """


class StoreError(WrenError):
    """Raised when a session store backend fails to read or write."""


class ResponseAlreadySent(WrenError):  # noqa: N818
    """Raised when a handler writes to a response that was already sent."""


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers. The dispatcher catches it at the request
    boundary and answers with a JSON error body.
    """

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """No route matched the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class AuthenticationError(WrenError):
    """Raised by ``LocalAuth`` callbacks when credentials or ids don't resolve."""
