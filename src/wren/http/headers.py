"""Case-insensitive request headers and the wire check for response headers.

Decoded once from the ASGI byte pairs into lowercase keys. Repeated
headers keep every value; item access returns the first one.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from wren.errors import ValidationError

_FORBIDDEN = frozenset("\r\n\0")


def check_header_value(label: str, value: str) -> None:
    """Reject header text that cannot go on the wire.

    Values must be latin-1 encodable and free of CR, LF and NUL. Raises
    ``ValidationError`` at the point the value is set, inside the
    handler, rather than when the response is written.
    """
    if _FORBIDDEN.intersection(value):
        msg = f"{label} must not contain CR, LF or NUL characters: {value!r}"
        raise ValidationError(msg)
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        msg = f"{label} must be latin-1 encodable: {value!r}"
        raise ValidationError(msg) from None


class Headers(Mapping[str, str]):
    """Read-only, case-insensitive view over request headers."""

    __slots__ = ("_values",)

    def __init__(self, raw: Iterable[tuple[bytes, bytes]] = ()) -> None:
        values: dict[str, list[str]] = {}
        for name, value in raw:
            key = name.decode("latin-1").lower()
            values.setdefault(key, []).append(value.decode("latin-1"))
        self._values = values

    @classmethod
    def from_dict(cls, headers: Mapping[str, str]) -> Headers:
        """Build from a plain ``{name: value}`` mapping (tests, tooling)."""
        return cls(
            (name.encode("latin-1"), value.encode("latin-1")) for name, value in headers.items()
        )

    def __getitem__(self, key: str) -> str:
        return self._values[key.lower()][0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._values.get(key.lower(), []))
