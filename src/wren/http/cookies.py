"""Cookie codec: signing, verification, parsing, and Set-Cookie serialization.

Consolidates the read side (``parse_cookies``, used by the dispatcher) and
the write side (``SetCookie``, used by ``Response``) in one module.

Signed cookies travel as ``name=value.signature`` where the signature is an
HMAC-SHA256 over *value*, base64 encoded (URL-safe alphabet, no padding, so
it never contains a dot). Signing goes through ``itsdangerous.Signer`` with
key derivation disabled, so the secret is used as the raw HMAC key and
verification is a constant-time comparison.

The secret is always passed explicitly. Nothing in this module keeps
process-wide signing state.
"""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import format_datetime
from functools import lru_cache

from itsdangerous import Signer

from wren.errors import ValidationError
from wren.http.headers import check_header_value

_SIGNED_PAIR = re.compile(r"^([^=]+)=(.+)\.(.+)$")
_PLAIN_PAIR = re.compile(r"^([^=]+)=(.+)$")

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@lru_cache(maxsize=32)
def _signer(secret: str) -> Signer:
    return Signer(
        secret,
        sep=".",
        key_derivation="none",
        digest_method=hashlib.sha256,
    )


def signature(value: str, secret: str) -> str:
    """Return the base64 HMAC-SHA256 signature of *value* under *secret*."""
    return _signer(secret).get_signature(value).decode("ascii")


def sign(name: str, value: str, secret: str) -> str:
    """Return ``name=value.signature``."""
    return f"{name}={value}.{signature(value, secret)}"


def verify(value: str, sig: str, secret: str) -> bool:
    """Check *sig* against a fresh signature of *value* under *secret*."""
    if not value or not sig:
        return False
    return _signer(secret).verify_signature(value, sig)


@dataclass(frozen=True, slots=True)
class SignedValue:
    """A verified signed cookie, split into its value and signature."""

    value: str
    signature: str


@dataclass(frozen=True, slots=True)
class ParsedCookies:
    """Cookies from one request's ``Cookie`` header.

    ``rejected`` lists the names of signed cookies whose signature did not
    verify. Parsing never touches the response; the dispatcher decides
    what to do with rejected names.
    """

    cookies: dict[str, str] = field(default_factory=dict)
    signed_cookies: dict[str, SignedValue] = field(default_factory=dict)
    rejected: tuple[str, ...] = ()

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return an unsigned cookie value, or *default*."""
        return self.cookies.get(name, default)

    def get_signed(self, name: str, default: str | None = None) -> str | None:
        """Return the value of a verified signed cookie, or *default*."""
        signed = self.signed_cookies.get(name)
        if signed is None:
            return default
        return signed.value


def parse_cookies(header: str, secret: str | None = None) -> ParsedCookies:
    """Parse a ``Cookie`` header value.

    A pair shaped like ``key=value.signature`` is treated as signed when a
    *secret* is available. Otherwise a pair is kept as a plain cookie only
    if its value has no dot. Everything else is ignored.

    Returns an empty ``ParsedCookies`` for empty or missing headers.
    """
    if not header:
        return ParsedCookies()

    cookies: dict[str, str] = {}
    signed_cookies: dict[str, SignedValue] = {}
    rejected: list[str] = []

    for pair in header.split(";"):
        pair = pair.strip()
        signed_match = _SIGNED_PAIR.match(pair)
        if signed_match and secret:
            key, value, sig = signed_match.groups()
            if verify(value, sig, secret):
                signed_cookies[key] = SignedValue(value, sig)
            else:
                rejected.append(key)
            continue

        plain_match = _PLAIN_PAIR.match(pair)
        if plain_match:
            key, value = plain_match.groups()
            if "." not in value:
                cookies[key] = value

    return ParsedCookies(cookies, signed_cookies, tuple(rejected))


def _http_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return format_datetime(value.astimezone(UTC), usegmt=True)


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response.

    ``max_age`` is in milliseconds and emitted in whole seconds. When
    ``secret_key`` is set the value is emitted in signed form.
    """

    name: str
    value: str
    expires: datetime | None = None
    max_age: int | None = None
    domain: str | None = None
    path: str | None = None
    secure: bool = False
    httponly: bool = False
    samesite: str | None = None
    secret_key: str | None = field(default=None, repr=False)

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        if self.secret_key:
            head = sign(self.name, self.value, self.secret_key)
        else:
            head = f"{self.name}={self.value}"
        parts = [head]
        if self.expires is not None:
            parts.append(f"Expires={_http_date(self.expires)}")
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age // 1000}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)


def make_cookie(
    key: str,
    value: str,
    *,
    signed: bool = False,
    secret_key: str | None = None,
    expires: datetime | None = None,
    max_age: int | None = None,
    domain: str | None = None,
    path: str | None = None,
    secure: bool = False,
    httponly: bool = False,
    samesite: str | None = None,
) -> SetCookie:
    """Validate cookie options and build a ``SetCookie``.

    Raises ``ValidationError`` when *key* or *value* is missing, when a
    signed cookie is requested without a secret, or when any text
    attribute cannot be sent in a header.
    """
    if not key or not value:
        msg = "Both the key and value are required to set a cookie."
        raise ValidationError(msg)
    if signed and not secret_key:
        msg = "A secret key is required to set a signed cookie."
        raise ValidationError(msg)
    for label, text in (
        ("Cookie name", key),
        ("Cookie value", value),
        ("Cookie domain", domain),
        ("Cookie path", path),
        ("Cookie SameSite", samesite),
    ):
        if text:
            check_header_value(label, text)
    return SetCookie(
        name=key,
        value=value,
        expires=expires,
        max_age=max_age,
        domain=domain,
        path=path,
        secure=secure,
        httponly=httponly,
        samesite=samesite,
        secret_key=secret_key if signed else None,
    )


def stringify(key: str, value: str, **options: object) -> str:
    """Return the ``Set-Cookie`` header value for the given options."""
    return make_cookie(key, value, **options).to_header_value()  # type: ignore[arg-type]


def expired_cookie(name: str) -> SetCookie:
    """A directive telling the client to drop cookie *name*."""
    return SetCookie(name=name, value="deleted", expires=EPOCH)
