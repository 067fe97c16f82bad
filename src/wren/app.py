"""Wren application class.

Mutable during setup (routes, middleware, routers, hooks). Frozen on the
first request or at ASGI lifespan startup, whichever comes first.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.invoke import invoke
from wren.config import AppConfig
from wren.errors import ConfigurationError
from wren.middleware.body import body_parser
from wren.middleware.protocol import HandlerFunc, Lifecycle
from wren.routing.route import MountedRoute, Route
from wren.routing.router import Router, RouteTable
from wren.server.handler import handle_request
from wren.sessions.middleware import SessionMiddleware

logger = logging.getLogger("wren.server")


class App(RouteTable):
    """The wren application.

    Usage::

        app = App(AppConfig(debug=True))
        app.use(SessionMiddleware(SessionConfig(secret_key="change-me")))

        @app.get("/users/:id")
        async def show(request, response, proceed):
            response.json({"id": request.params["id"]})

    Global middleware registered with ``use()`` applies to every route,
    including routes registered before it: handler chains are composed
    when the app freezes.

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock plus
        double-check so exactly one thread composes the route table even
        if several workers hit ``__call__()`` on the first request.
    """

    __slots__ = (
        "_cookie_secret",
        "_freeze_lock",
        "_frozen",
        "_middleware_list",
        "_mounted",
        "_routes",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._cookie_secret: str = self.config.cookie_secret
        self._routes: list[Route] = []
        self._middleware_list: list[HandlerFunc] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._mounted: tuple[MountedRoute, ...] = ()

    # -- Registration --

    def _append_route(self, route: Route) -> None:
        self._check_not_frozen()
        self._routes.append(route)

    def use(self, *items: HandlerFunc | Router) -> None:
        """Add global middleware, or mount routers.

        Middleware runs before every route's own handlers, in registration
        order. A ``SessionMiddleware`` also supplies the secret used to
        verify signed request cookies.
        """
        self._check_not_frozen()
        for item in items:
            if isinstance(item, Router):
                self.use_router(item)
                continue
            if isinstance(item, SessionMiddleware):
                self._adopt_secret(item.secret_key)
            self._middleware_list.append(item)

    def use_router(self, router: Router) -> None:
        """Mount *router*'s routes with its scoped middleware baked in."""
        self._check_not_frozen()
        self._routes.extend(router.composed_routes())

    def _adopt_secret(self, secret: str) -> None:
        if self._cookie_secret and self._cookie_secret != secret:
            msg = (
                "AppConfig.cookie_secret differs from the SessionMiddleware secret_key; "
                "signed session cookies would never verify."
            )
            raise ConfigurationError(msg)
        self._cookie_secret = secret

    @property
    def cookie_secret(self) -> str:
        return self._cookie_secret

    @property
    def routes(self) -> tuple[Route, ...]:
        """Routes as declared, without global middleware."""
        return tuple(self._routes)

    @property
    def mounted_routes(self) -> tuple[MountedRoute, ...]:
        """Composed routes. Empty until the app has frozen."""
        return self._mounted

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before middleware ``startup()`` and before any request is served.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        await handle_request(
            scope,
            receive,
            send,
            routes=self._mounted,
            cookie_secret=self._cookie_secret or None,
            max_content_length=self.config.max_content_length,
            debug=self.config.debug,
        )

    def _lifecycle_middleware(self) -> list[Lifecycle]:
        return [mw for mw in self._middleware_list if isinstance(mw, Lifecycle)]

    async def startup(self) -> None:
        """Run startup hooks, then start middleware background work."""
        self._ensure_frozen()
        for hook in self._startup_hooks:
            await invoke(hook)
        for mw in self._lifecycle_middleware():
            await mw.startup()

    async def shutdown(self) -> None:
        """Run shutdown hooks, then stop middleware background work."""
        for hook in self._shutdown_hooks:
            await invoke(hook)
        for mw in self._lifecycle_middleware():
            await mw.shutdown()

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception as exc:
                    logger.exception("Shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compose every route's handler chain.

        MUST only be called while holding _freeze_lock.
        """
        if self.config.log_level is not None:
            logging.getLogger("wren").setLevel(self.config.log_level.upper())

        global_chain: tuple[HandlerFunc, ...] = tuple(self._middleware_list)
        if self.config.body_parser:
            global_chain = (body_parser, *global_chain)

        self._mounted = tuple(
            MountedRoute(
                route=route,
                pattern=route.compile(),
                handlers=(*global_chain, *route.handlers),
            )
            for route in self._routes
        )
        self._frozen = True
        logger.debug("App frozen with %d route(s)", len(self._mounted))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and routers before the first request."
            )
            raise ConfigurationError(msg)
