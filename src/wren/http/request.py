"""HTTP request.

Transport metadata (method, path, headers) is fixed at creation. The
dispatcher and middleware fill in the per-request attributes as the
request moves through the pipeline: ``params`` and ``cookies`` on route
match, ``fields``/``files`` from the body parser, ``session`` from
``SessionMiddleware``, ``user`` from ``LocalAuth``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from wren._internal.asgi import Receive
from wren.http.cookies import ParsedCookies
from wren.http.headers import Headers
from wren.http.url import ParsedUrl, parse_url

if TYPE_CHECKING:
    from wren.http.forms import FormData, UploadFile
    from wren.sessions.middleware import Session


@dataclass(slots=True, eq=False)
class Request:
    """An HTTP request flowing through the handler pipeline.

    Body is accessed asynchronously via ``.body()``, ``.json()``, ``.form()``.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes = b""
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None

    # Filled in by the dispatcher
    parsed_url: ParsedUrl | None = None
    params: dict[str, str] = field(default_factory=dict)
    cookies: ParsedCookies = field(default_factory=ParsedCookies)

    # Filled in by middleware
    fields: dict[str, Any] = field(default_factory=dict)
    files: dict[str, UploadFile] = field(default_factory=dict)
    session: Session | None = None
    user: Any = None
    state: dict[str, Any] = field(default_factory=dict)

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False)

    # Private: cache for body and parsed form data
    _cache: dict[str, Any] = field(default_factory=dict, repr=False)

    # -- Computed properties --

    @property
    def query(self) -> dict[str, str]:
        """Decoded query string parameters."""
        if self.parsed_url is None:
            return {}
        return self.parsed_url.query

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Request target (path + query string)."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached: the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        if self._receive is None:
            return
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Result is cached: the body is read and parsed once.

        Raises:
            ValueError: If Content-Type is not a form encoding.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from wren.http.forms import parse_form_data

        ct = self.content_type or "application/x-www-form-urlencoded"
        raw = await self.body()
        result = await parse_form_data(raw, ct)
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive | None = None) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        query_string = scope.get("query_string", b"")
        target = scope["path"]
        if query_string:
            target = f"{target}?{query_string.decode('latin-1')}"
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(scope.get("headers", ())),
            query_string=query_string,
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            parsed_url=parse_url(target),
            _receive=receive,
        )
