"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching::

    async def mw(request: Request, response: Response, proceed: Proceed) -> None

Built-in middleware:
    body_parser -- Form and multipart body parsing (installed by default)
    SessionMiddleware -- Server-side sessions (see ``wren.sessions``)
"""

from wren.middleware.body import body_parser
from wren.middleware.pipeline import run_pipeline
from wren.middleware.protocol import Handler, HandlerFunc, Lifecycle, Proceed

__all__ = [
    "Handler",
    "HandlerFunc",
    "Lifecycle",
    "Proceed",
    "body_parser",
    "run_pipeline",
]
