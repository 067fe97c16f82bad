"""Route, RoutePattern, and Method definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from wren.errors import ConfigurationError
from wren.middleware.protocol import HandlerFunc

# Marks the start of the parameter name in a route pattern: /users/:id
PARAM_MARKER = ":"


class Method(StrEnum):
    """HTTP methods a route can be registered for."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """A compiled route pattern.

    Literal:        ``/about``     (param_name=None, matches the path exactly)
    Parameterized:  ``/users/:id`` (prefix="/users/", param_name="id")

    A parameterized pattern matches every path that starts with its
    prefix and captures the whole remainder, slashes included, as the one
    parameter. Only a single parameter per pattern is supported.
    """

    prefix: str
    param_name: str | None = None

    @classmethod
    def parse(cls, pattern: str) -> RoutePattern:
        """Compile a pattern string.

        Raises ``ConfigurationError`` for patterns with more than one
        parameter marker or an empty parameter name.
        """
        if PARAM_MARKER not in pattern:
            return cls(prefix=pattern)
        prefix, _, name = pattern.partition(PARAM_MARKER)
        if PARAM_MARKER in name:
            msg = (
                f"Route pattern {pattern!r} declares more than one parameter. "
                "Only a single ':param' segment is supported."
            )
            raise ConfigurationError(msg)
        if not name:
            msg = f"Route pattern {pattern!r} has an empty parameter name."
            raise ConfigurationError(msg)
        return cls(prefix=prefix, param_name=name)

    @property
    def is_literal(self) -> bool:
        return self.param_name is None

    def match(self, path: str) -> dict[str, str] | None:
        """Return extracted params if *path* matches, else ``None``."""
        if self.param_name is None:
            return {} if path == self.prefix else None
        if not path.startswith(self.prefix):
            return None
        return {self.param_name: path[len(self.prefix) :]}


@dataclass(frozen=True, slots=True)
class Route:
    """A declared route: pattern, method, and its handler chain."""

    pattern: str
    method: Method
    handlers: tuple[HandlerFunc, ...]

    def compile(self) -> RoutePattern:
        return RoutePattern.parse(self.pattern)


@dataclass(frozen=True, slots=True)
class MountedRoute:
    """A route bound into an app, with its full handler chain composed.

    ``handlers`` is ``[global middleware, router-scoped middleware, route
    handlers]`` built once at freeze time.
    """

    route: Route
    pattern: RoutePattern
    handlers: tuple[HandlerFunc, ...]

    def match(self, method: str, path: str) -> dict[str, str] | None:
        if method != self.route.method:
            return None
        return self.pattern.match(path)
