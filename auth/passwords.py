"""
auth/passwords.py -- Password hashing and credential verification.

Passwords: bcrypt, used directly (no passlib wrapper). The cost factor comes
from Settings.bcrypt_rounds; tests lower it to keep the suite fast.

Username enumeration: verify_credentials() always runs one bcrypt check,
against _DUMMY_HASH when the username is unknown, so an unknown user and a
wrong password cost the same time and produce the same InvalidCredentials.
Only the server log tells the two apart.

Layer rule: no imports from api/, posts/, or cache/. Import from core/ is
allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings
from core.errors import InvalidCredentials

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("postboard.auth")


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; the login model caps passwords
    at 255 characters.
    """
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is a failed match, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so the first failed login is not measurably slower
# than later ones.
_DUMMY_HASH: str = hash_password("postboard_timing_dummy")


def verify_credentials(store: UserStore, username: str, password: str) -> User:
    """Return the User whose credentials match, or raise InvalidCredentials.

    Storage failures propagate from the store as InternalError.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        logger.info("Login failed for %r: unknown user", username)
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        logger.info("Login failed for %r: wrong password", username)
        raise InvalidCredentials()
    return user
