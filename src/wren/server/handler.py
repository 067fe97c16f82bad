"""ASGI handler: translates ASGI scope/messages to wren types.

The only component that touches raw ASGI directly. Converts the scope to
a ``Request``, creates the ``Response`` every handler shares, runs the
pipeline of each matching route and sends the result through ASGI
``send()``.
"""

import logging
from contextvars import Token

from wren._internal.asgi import Receive, Scope, Send
from wren.context import request_var
from wren.errors import HTTPError
from wren.http.cookies import parse_cookies
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.pipeline import run_pipeline
from wren.routing.route import MountedRoute
from wren.server.errors import handle_http_error, handle_internal_error
from wren.server.sender import send_response

logger = logging.getLogger("wren.server")


def attach_cookies(request: Request, response: Response, secret: str | None) -> None:
    """Parse the Cookie header onto the request.

    Signed cookies that fail verification are dropped from the request
    and deleted on the client.
    """
    parsed = parse_cookies(request.headers.get("cookie", ""), secret)
    for name in parsed.rejected:
        logger.warning(
            "Rejected cookie %r with an invalid signature (%s %s)",
            name,
            request.method,
            request.path,
        )
        response.delete_cookie(name)
    request.cookies = parsed


async def dispatch(
    request: Request, response: Response, routes: tuple[MountedRoute, ...]
) -> int:
    """Run every route matching the request, in registration order.

    All matches share *request* and *response*. Returns how many fired.
    """
    fired = 0
    for mounted in routes:
        params = mounted.match(request.method, request.path)
        if params is None:
            continue
        request.params = params
        if request.parsed_url is not None:
            request.parsed_url.params = dict(params)
        await run_pipeline(mounted.handlers, request, response)
        fired += 1
    return fired


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    routes: tuple[MountedRoute, ...],
    cookie_secret: str | None,
    max_content_length: int,
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    response = Response()
    try:
        request = Request.from_asgi(scope, receive)
    except Exception:
        logger.exception("Could not read request %s %r", scope.get("method"), scope.get("path"))
        response.status(400).json({"message": "Bad Request"})
        await send_response(response, send)
        return

    token: Token[Request] = request_var.set(request)

    try:
        length = request.content_length
        if length is not None and length > max_content_length:
            raise HTTPError(status=413, detail="Request body too large")

        attach_cookies(request, response, cookie_secret or None)
        if not await dispatch(request, response, routes):
            response.status(404).json({"message": f"Cannot {request.method} {request.path}"})
    except HTTPError as exc:
        handle_http_error(exc, request, response)
    except Exception as exc:
        handle_internal_error(exc, request, response, debug=debug)
    finally:
        request_var.reset(token)

    await send_response(response, send)
