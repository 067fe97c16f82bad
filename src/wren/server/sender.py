"""ASGI response sending: turns a finished ``Response`` into ASGI messages."""

from wren._internal.asgi import Send
from wren.http.response import Response


def _body_allowed(status: int) -> bool:
    # 1xx, 204 and 304 responses carry no message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send) -> None:
    """Send status, headers (Set-Cookie included) and the body."""
    body = response.body if _body_allowed(response.status_code) else b""
    raw_headers = response.raw_headers()
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status_code,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": body})
