"""Declarative router.

A ``Router`` only records routes and router-scoped middleware; it does no
matching and knows nothing about the transport. Apps mount routers, and
routers can include other routers, which flattens their route lists.

Usage::

    api = Router()
    api.use(require_token)

    api.get("/users/:id", load_user, show_user)

    @api.route("/users", methods=["POST"])
    async def create_user(request, response, proceed):
        response.status(201).json(request.fields)

    app.use(api)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from wren.errors import ConfigurationError
from wren.middleware.protocol import HandlerFunc
from wren.routing.route import Method, Route, RoutePattern


def _method(value: str | Method) -> Method:
    try:
        return Method(value.upper())
    except ValueError:
        allowed = ", ".join(Method)
        msg = f"Unsupported HTTP method {value!r}. Expected one of: {allowed}."
        raise ConfigurationError(msg) from None


class RouteTable:
    """Route registration API shared by ``Router`` and ``App``."""

    __slots__ = ()

    def add_route(self, method: str | Method, pattern: str, *handlers: HandlerFunc) -> Route:
        """Register *handlers* for (*method*, *pattern*).

        Duplicate registrations are kept: every matching route fires.
        Raises ``ConfigurationError`` for malformed patterns or methods.
        """
        if not handlers:
            msg = f"Route {pattern!r} needs at least one handler."
            raise ConfigurationError(msg)
        RoutePattern.parse(pattern)
        route = Route(pattern=pattern, method=_method(method), handlers=tuple(handlers))
        self._append_route(route)
        return route

    def _append_route(self, route: Route) -> None:
        raise NotImplementedError

    def _verb(self, method: Method, pattern: str, handlers: tuple[HandlerFunc, ...]) -> Any:
        if handlers:
            return self.add_route(method, pattern, *handlers)
        return self.route(pattern, methods=[method])

    def get(self, pattern: str, *handlers: HandlerFunc) -> Any:
        """Register a GET route. Without handlers, returns a decorator."""
        return self._verb(Method.GET, pattern, handlers)

    def post(self, pattern: str, *handlers: HandlerFunc) -> Any:
        """Register a POST route."""
        return self._verb(Method.POST, pattern, handlers)

    def put(self, pattern: str, *handlers: HandlerFunc) -> Any:
        """Register a PUT route."""
        return self._verb(Method.PUT, pattern, handlers)

    def patch(self, pattern: str, *handlers: HandlerFunc) -> Any:
        """Register a PATCH route."""
        return self._verb(Method.PATCH, pattern, handlers)

    def delete(self, pattern: str, *handlers: HandlerFunc) -> Any:
        """Register a DELETE route."""
        return self._verb(Method.DELETE, pattern, handlers)

    def route(
        self,
        pattern: str,
        *middleware: HandlerFunc,
        methods: Iterable[str] | None = None,
    ) -> Callable[[HandlerFunc], HandlerFunc]:
        """Register the decorated function as the last handler of a route.

        Args:
            pattern: Literal path or ``/prefix/:param``.
            middleware: Handlers that run before the decorated one.
            methods: HTTP methods. Defaults to ``["GET"]``.
        """

        def decorator(func: HandlerFunc) -> HandlerFunc:
            for method in methods or ["GET"]:
                self.add_route(method, pattern, *middleware, func)
            return func

        return decorator


class Router(RouteTable):
    """Accumulates routes and router-scoped middleware."""

    __slots__ = ("_middleware", "_routes")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._middleware: list[HandlerFunc] = []

    def _append_route(self, route: Route) -> None:
        self._routes.append(route)

    @property
    def routes(self) -> tuple[Route, ...]:
        """Routes declared on this router, without its scoped middleware."""
        return tuple(self._routes)

    @property
    def middleware(self) -> tuple[HandlerFunc, ...]:
        """Router-scoped middleware, in registration order."""
        return tuple(self._middleware)

    def use(self, *items: HandlerFunc | Router) -> None:
        """Add router-scoped middleware, or include other routers.

        Including a router appends its routes with that router's scoped
        middleware already prepended. The included router is snapshotted:
        routes or middleware added to it afterwards are not picked up.
        """
        for item in items:
            if isinstance(item, Router):
                self._routes.extend(item.composed_routes())
            else:
                self._middleware.append(item)

    def composed_routes(self) -> tuple[Route, ...]:
        """Routes with this router's scoped middleware prepended."""
        scoped = tuple(self._middleware)
        return tuple(
            Route(pattern=r.pattern, method=r.method, handlers=(*scoped, *r.handlers))
            for r in self._routes
        )
