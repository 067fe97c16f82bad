"""Body parser middleware.

Reads form bodies before the rest of the chain runs and exposes them as
``request.fields`` (single values unwrapped, repeated fields kept as
lists) and ``request.files``. GET/HEAD requests and bodies that are not
form encodings pass through untouched.

Installed as the first global middleware unless
``AppConfig(body_parser=False)``.
"""

import logging

from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Proceed

logger = logging.getLogger("wren.server")

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def body_parser(request: Request, response: Response, proceed: Proceed) -> None:
    """Populate ``request.fields`` and ``request.files`` from the body."""
    content_type = (request.content_type or "").lower()
    if request.method in ("GET", "HEAD") or not content_type.startswith(_FORM_TYPES):
        await proceed()
        return

    try:
        form = await request.form()
    except ValueError as exc:
        logger.warning("Body parsing failed for %s %s: %s", request.method, request.path, exc)
        response.status(500).json({"error": str(exc)})
        return

    request.fields = form.normalized()
    request.files = dict(form.files)
    await proceed()
