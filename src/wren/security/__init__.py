"""Local authentication and password hashing.

Password hashing (``pip install wren[auth]`` for argon2id)::

    from wren.security import hash_password, verify_password

    hashed = hash_password("my-password")
    ok = verify_password("my-password", hashed)
"""

from wren.security.local_auth import LocalAuth, UserModel
from wren.security.passwords import hash_password, verify_password

__all__ = [
    "LocalAuth",
    "UserModel",
    "hash_password",
    "verify_password",
]
