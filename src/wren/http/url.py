"""URL decomposition.

Splits a request target (absolute URL or origin-form path) into its parts.
Query strings are decoded into a flat dict: the last value wins for
repeated keys, blank values are kept.

An origin-form target (anything starting with ``/``) is split on ``#``
and ``?`` directly, so a path such as ``//a:b/x`` stays a path instead
of being read as a network location.
"""

from dataclasses import dataclass, field
from urllib.parse import SplitResult, parse_qsl, urlsplit


@dataclass(slots=True)
class ParsedUrl:
    """The components of a request URL.

    ``params`` starts empty and is filled by the dispatcher when a
    parameterized route matches.
    """

    protocol: str | None
    host: str | None
    port: int | None
    path: str
    query: dict[str, str]
    fragment: str | None
    params: dict[str, str] = field(default_factory=dict)


def _port(parts: SplitResult) -> int | None:
    try:
        return parts.port
    except ValueError:
        return None


def parse_query(query: str) -> dict[str, str]:
    """Decode a query string into a flat dict."""
    return dict(parse_qsl(query, keep_blank_values=True))


def parse_url(url: str) -> ParsedUrl:
    """Decompose *url* into protocol, host, port, path, query, and fragment.

    A port that is not a number is reported as ``None``.

    Usage::

        parsed = parse_url("http://example.com:8080/users?page=2#top")
        parsed.port   # 8080
        parsed.query  # {"page": "2"}
    """
    if url.startswith("/"):
        target, _, fragment = url.partition("#")
        path, _, query = target.partition("?")
        return ParsedUrl(
            protocol=None,
            host=None,
            port=None,
            path=path,
            query=parse_query(query),
            fragment=fragment or None,
        )

    parts = urlsplit(url)
    return ParsedUrl(
        protocol=parts.scheme or None,
        host=parts.hostname,
        port=_port(parts),
        path=parts.path,
        query=parse_query(parts.query),
        fragment=parts.fragment or None,
    )
