"""Sequential handler pipeline.

Runs an ordered tuple of handlers strictly one at a time. Handler *i+1*
starts only after handler *i* calls ``proceed()``; a handler that never
calls it ends the chain.

``proceed()`` returns an awaitable. Async handlers normally ``await
proceed()`` so they can act after the rest of the chain. Sync handlers
can only call it; the pipeline then runs the rest of the chain once the
handler returns. Either way the next handler runs at most once per
``proceed`` even if it is called or awaited again.

The pipeline catches nothing. A handler that raises propagates to the
dispatcher.
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from typing import Any

from wren._internal.invoke import invoke
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import HandlerFunc


class _Advance:
    """Awaitable returned by ``proceed()``; runs the tail of the chain once."""

    __slots__ = ("_chain", "_index", "started")

    def __init__(self, chain: _Chain, index: int) -> None:
        self._chain = chain
        self._index = index
        self.started = False

    def __await__(self) -> Generator[Any, None, None]:
        return self._run().__await__()

    async def _run(self) -> None:
        if self.started:
            return
        self.started = True
        await self._chain.run(self._index)


class _Proceed:
    """The ``proceed`` capability handed to the handler at one position."""

    __slots__ = ("_advance", "_chain", "_index")

    def __init__(self, chain: _Chain, index: int) -> None:
        self._chain = chain
        self._index = index
        self._advance: _Advance | None = None

    def __call__(self) -> _Advance:
        if self._advance is None:
            self._advance = _Advance(self._chain, self._index)
        return self._advance

    async def settle(self) -> None:
        """Run the tail if proceed() was called but never awaited."""
        if self._advance is not None and not self._advance.started:
            await self._advance


class _Chain:
    __slots__ = ("handlers", "request", "response")

    def __init__(
        self,
        handlers: tuple[HandlerFunc, ...],
        request: Request,
        response: Response,
    ) -> None:
        self.handlers = handlers
        self.request = request
        self.response = response

    async def run(self, index: int) -> None:
        if index >= len(self.handlers):
            return
        proceed = _Proceed(self, index + 1)
        await invoke(self.handlers[index], self.request, self.response, proceed)
        await proceed.settle()


async def run_pipeline(
    handlers: Sequence[HandlerFunc],
    request: Request,
    response: Response,
) -> None:
    """Run *handlers* in order against one request/response pair."""
    await _Chain(tuple(handlers), request, response).run(0)
