"""Dispatcher safety net.

Handlers are expected to answer their own failures. Anything that still
escapes the pipeline is logged here and, when the response has not been
sent yet, turned into a JSON error body.
"""

import logging

from wren.errors import HTTPError
from wren.http.request import Request
from wren.http.response import Response

logger = logging.getLogger("wren.server")


def handle_http_error(exc: HTTPError, request: Request, response: Response) -> None:
    """Answer an ``HTTPError`` with its status and detail."""
    if response.sent:
        logger.warning(
            "%s raised after the response was sent: %s %s", exc, request.method, request.path
        )
        return
    response.status(exc.status).json({"message": exc.detail or str(exc.status)})


def handle_internal_error(
    exc: Exception, request: Request, response: Response, *, debug: bool
) -> None:
    """Log an unexpected exception and answer 500 if still possible."""
    logger.exception("Unhandled error in %s %s", request.method, request.path)
    if response.sent:
        return
    body: dict[str, str] = {"message": "Internal Server Error"}
    if debug:
        body["error"] = f"{type(exc).__name__}: {exc}"
    response.status(500).json(body)
