"""Password hashing for ``LocalAuth``: argon2id, with scrypt as fallback.

``hash_password`` uses argon2id when ``argon2-cffi`` is installed
(``pip install wren[auth]``) and stdlib scrypt otherwise. Both emit
PHC-style strings, and ``verify_password`` picks the algorithm from the
hash prefix, so stored hashes keep verifying if the default changes.

Usage::

    from wren.security.passwords import hash_password, verify_password

    stored = hash_password("hunter2")
    assert verify_password("hunter2", stored)
"""

import base64
import hashlib
import hmac
import importlib.util
import os
from functools import cache

_ARGON2_PREFIX = "$argon2"
_SCRYPT_PREFIX = "$scrypt$"

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_DKLEN = 64
_SALT_BYTES = 16


@cache
def argon2_available() -> bool:
    return importlib.util.find_spec("argon2") is not None


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


# -- scrypt --


def _scrypt(password: str, salt: bytes, n: int, r: int, p: int, dklen: int) -> bytes:
    return hashlib.scrypt(password.encode("utf-8"), salt=salt, n=n, r=r, p=p, dklen=dklen)


def _hash_scrypt(password: str) -> str:
    salt = os.urandom(_SALT_BYTES)
    key = _scrypt(password, salt, _SCRYPT_N, _SCRYPT_R, _SCRYPT_P, _SCRYPT_DKLEN)
    return f"{_SCRYPT_PREFIX}n={_SCRYPT_N},r={_SCRYPT_R},p={_SCRYPT_P}${_b64(salt)}${_b64(key)}"


def _verify_scrypt(password: str, encoded: str) -> bool:
    # $scrypt$n=N,r=R,p=P$<salt>$<key>
    _, scheme, settings, salt_b64, key_b64 = ([*encoded.split("$"), "", "", "", ""])[:5]
    if scheme != "scrypt" or not salt_b64 or not key_b64:
        return False
    try:
        params = {k: int(v) for k, _, v in (item.partition("=") for item in settings.split(","))}
        salt = base64.b64decode(salt_b64, validate=True)
        expected = base64.b64decode(key_b64, validate=True)
    except ValueError:
        return False
    key = _scrypt(
        password,
        salt,
        params.get("n", _SCRYPT_N),
        params.get("r", _SCRYPT_R),
        params.get("p", _SCRYPT_P),
        len(expected),
    )
    return hmac.compare_digest(key, expected)


# -- argon2 --


def _hash_argon2(password: str) -> str:
    from argon2 import PasswordHasher

    return PasswordHasher().hash(password)


def _verify_argon2(password: str, encoded: str) -> bool:
    from argon2 import PasswordHasher
    from argon2.exceptions import InvalidHashError, VerificationError

    try:
        return PasswordHasher().verify(encoded, password)
    except (VerificationError, InvalidHashError):
        return False


# -- Public API --


def hash_password(password: str) -> str:
    """Hash *password* with the strongest available algorithm.

    Raises ``ValueError`` for an empty password.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    if argon2_available():
        return _hash_argon2(password)
    return _hash_scrypt(password)


def verify_password(password: str, encoded: str) -> bool:
    """Check *password* against a hash produced by ``hash_password``.

    Returns ``False`` for an empty password or hash. Raises ``ValueError``
    for an unrecognized hash format and ``RuntimeError`` for an argon2
    hash when ``argon2-cffi`` is not installed.
    """
    if not password or not encoded:
        return False
    if encoded.startswith(_SCRYPT_PREFIX):
        return _verify_scrypt(password, encoded)
    if encoded.startswith(_ARGON2_PREFIX):
        if not argon2_available():
            msg = (
                "Hash was created with argon2 but argon2-cffi is not installed. "
                "Install it with: pip install wren[auth]"
            )
            raise RuntimeError(msg)
        return _verify_argon2(password, encoded)
    msg = f"Unknown password hash format: {encoded[:12]}..."
    raise ValueError(msg)
