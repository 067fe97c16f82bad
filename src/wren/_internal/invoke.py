"""Invoke helpers: call sync or async handlers uniformly.

Wren handlers can be ``def`` or ``async def``. Any code that calls a
user-provided callable (pipeline handlers, startup hooks, LocalAuth
overrides) goes through this helper so the sync/async check lives in
exactly one place.

Usage::

    from wren._internal.invoke import invoke

    result = await invoke(handler, request, response, proceed)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
