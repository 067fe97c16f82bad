"""HTTP response handed to every handler in the pipeline.

One ``Response`` is created per request by the dispatcher and shared by
every handler that runs for it. Handlers set status, headers, and cookies
and finish it with exactly one of ``send``, ``json``, or ``redirect``.
The dispatcher writes it to the transport after the pipeline completes,
so headers and cookies may still be added after the body is set.
"""

from __future__ import annotations

import json as json_module
from datetime import datetime
from typing import Any

from wren.errors import ResponseAlreadySent
from wren.http.cookies import SetCookie, expired_cookie, make_cookie
from wren.http.headers import check_header_value


class Response:
    """Mutable response with chainable helpers.

    Usage::

        async def show(request, response, proceed):
            response.status(201).json({"id": request.params["id"]})
    """

    __slots__ = ("_cookies", "_headers", "_sent", "body", "content_type", "status_code")

    def __init__(self) -> None:
        self.status_code: int = 200
        self.content_type: str | None = None
        self.body: bytes = b""
        self._headers: list[tuple[str, str]] = []
        self._cookies: dict[str, SetCookie] = {}
        self._sent = False

    def __repr__(self) -> str:
        state = "sent" if self._sent else "pending"
        return f"<Response {self.status_code} {state}>"

    # -- State --

    @property
    def sent(self) -> bool:
        """True once a body has been committed with send/json/redirect."""
        return self._sent

    @property
    def headers(self) -> tuple[tuple[str, str], ...]:
        """Headers set by handlers, in insertion order."""
        return tuple(self._headers)

    @property
    def cookies(self) -> tuple[SetCookie, ...]:
        """Pending Set-Cookie directives, one per cookie name."""
        return tuple(self._cookies.values())

    def get_header(self, name: str) -> str | None:
        """Return the last value set for header *name*."""
        lowered = name.lower()
        for key, value in reversed(self._headers):
            if key.lower() == lowered:
                return value
        return None

    @property
    def text(self) -> str:
        """Body as string."""
        return self.body.decode("utf-8")

    # -- Chainable setters --

    def status(self, status_code: int) -> Response:
        """Set the status code without sending anything."""
        self.status_code = status_code
        return self

    def set_header(self, name: str, value: str) -> Response:
        """Add a response header.

        Raises ``ValidationError`` for text that cannot be sent as a header.
        """
        check_header_value("Header name", name)
        check_header_value(f"Header {name!r}", value)
        self._headers.append((name, value))
        return self

    # -- Terminal writers --

    def send(self, data: Any = "") -> None:
        """Send a plain-text body. Dicts and lists are serialized as JSON."""
        if isinstance(data, (dict, list)):
            data = json_module.dumps(data)
        self._finish(data, "text/plain; charset=utf-8")

    def json(self, data: Any) -> None:
        """Send *data* serialized as JSON."""
        self._finish(json_module.dumps(data), "application/json")

    def redirect(self, url: str, status_code: int = 302) -> None:
        """Send a redirect to *url*."""
        check_header_value("Redirect URL", url)
        self._finish(b"", None)
        self.status_code = status_code
        self._headers.append(("Location", url))

    def _finish(self, data: str | bytes | None, content_type: str | None) -> None:
        if self._sent:
            msg = "Response already sent; a handler wrote to it twice."
            raise ResponseAlreadySent(msg)
        if data is None:
            data = b""
        self.body = data.encode("utf-8") if isinstance(data, str) else data
        self.content_type = content_type
        self._sent = True

    # -- Cookies --

    def cookie(
        self,
        key: str,
        value: str,
        *,
        expires: datetime | None = None,
        max_age: int | None = None,
        domain: str | None = None,
        path: str | None = None,
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = None,
    ) -> Response:
        """Set an unsigned cookie. ``max_age`` is in milliseconds.

        Raises ``ValidationError`` if *key* or *value* is empty.
        """
        self._cookies[key] = make_cookie(
            key,
            value,
            expires=expires,
            max_age=max_age,
            domain=domain,
            path=path,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return self

    def signed_cookie(
        self,
        key: str,
        value: str,
        secret_key: str,
        *,
        expires: datetime | None = None,
        max_age: int | None = None,
        domain: str | None = None,
        path: str | None = None,
        secure: bool = False,
        httponly: bool = False,
        samesite: str | None = None,
    ) -> Response:
        """Set a cookie signed with *secret_key*.

        Raises ``ValidationError`` if *key*, *value*, or *secret_key* is empty.
        """
        self._cookies[key] = make_cookie(
            key,
            value,
            signed=True,
            secret_key=secret_key,
            expires=expires,
            max_age=max_age,
            domain=domain,
            path=path,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return self

    def delete_cookie(self, name: str) -> Response:
        """Tell the client to drop cookie *name*."""
        self._cookies[name] = expired_cookie(name)
        return self

    # -- Wire form --

    def raw_headers(self) -> list[tuple[bytes, bytes]]:
        """ASGI header pairs: content-type, handler headers, then Set-Cookie."""
        raw: list[tuple[bytes, bytes]] = []
        if self.content_type:
            raw.append((b"content-type", self.content_type.encode("latin-1")))
        raw.extend(
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self._headers
        )
        raw.extend(
            (b"set-cookie", cookie.to_header_value().encode("latin-1"))
            for cookie in self._cookies.values()
        )
        return raw
