"""Handler protocol and the proceed capability.

A handler is any callable matching::

    async def my_handler(request: Request, response: Response, proceed: Proceed) -> None: ...

Plain ``def`` handlers work too. No base class required. Handlers run one
at a time; a handler advances the chain by calling ``proceed()`` and
halts it by returning without calling it.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from wren.http.request import Request
from wren.http.response import Response

# What proceed() hands back: await it to run the rest of the chain
type Advance = Awaitable[None]


class Proceed(Protocol):
    """The capability that runs the next handler in the chain."""

    def __call__(self) -> Advance: ...


class Handler(Protocol):
    """Protocol for wren handlers and middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(request, response, proceed):
            start = time.monotonic()
            await proceed()
            response.set_header("X-Time", f"{time.monotonic() - start:.3f}")

        # Class middleware
        class RequireToken:
            def __call__(self, request, response, proceed):
                if request.headers.get("authorization") != "Bearer s3cr3t":
                    response.status(401).json({"error": "unauthorized"})
                    return
                proceed()
    """

    def __call__(self, request: Request, response: Response, proceed: Proceed) -> Any: ...


type HandlerFunc = Callable[[Request, Response, Proceed], Any]


@runtime_checkable
class Lifecycle(Protocol):
    """Middleware that owns background work tied to the app's lifetime.

    ``App`` calls ``startup()`` during ASGI lifespan startup and
    ``shutdown()`` during lifespan shutdown, after the app's own hooks.
    """

    async def startup(self) -> None: ...

    async def shutdown(self) -> None: ...
