"""
auth/sessions.py -- Server-side session records in a TTL key-value store.

Each session is one key, session:<token>, holding a JSON payload. The
expiry is set once at creation and never extended; the backend enforces it
(Redis EX, or the SQLite backend's expiry check), so lookup() only has to
tell "present" from "absent".

Tokens come from secrets.token_urlsafe(32): 256 bits of entropy, so two
concurrently valid sessions never share a token in practice.

Only the first few characters of a token are ever logged.

Layer rule: no imports from api/ or posts/. cache/ provides the backend.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timezone

from auth.models import Session
from cache.store import KeyValueStore, KeyValueStoreError
from core.errors import InternalError, NotFoundError

logger = logging.getLogger("postboard.sessions")

SESSION_KEY_PREFIX = "session:"
DEFAULT_SESSION_TTL = 24 * 60 * 60


def _session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


def _redact(token: str) -> str:
    return f"{token[:6]}..."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Create, look up and revoke sessions.

    Usage:
        sessions = SessionStore(kv)
        token = sessions.create_session(user_id=1, username="alice")
        session = sessions.lookup(token)      # raises NotFoundError when gone
        sessions.revoke(token)                # idempotent
    """

    def __init__(
        self,
        kv: KeyValueStore,
        ttl_seconds: int = DEFAULT_SESSION_TTL,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._kv = kv
        self.ttl_seconds = ttl_seconds
        self._now = now

    def create_session(self, user_id: int, username: str) -> str:
        """Store a new session record and return its token."""
        token = secrets.token_urlsafe(32)
        session = Session(token=token, user_id=user_id, username=username, created_at=self._now())
        try:
            self._kv.set(_session_key(token), session.to_json(), self.ttl_seconds)
        except KeyValueStoreError as exc:
            logger.error("Failed to create session for user_id=%d: %s", user_id, exc)
            raise InternalError("Failed to create session") from exc
        logger.debug("Session %s created for user_id=%d", _redact(token), user_id)
        return token

    def lookup(self, token: str) -> Session:
        """Return the live session for token.

        Raises NotFoundError if the token is unknown or expired, InternalError
        if the backend fails or the stored record is unreadable.
        """
        try:
            raw = self._kv.get(_session_key(token))
        except KeyValueStoreError as exc:
            logger.error("Session lookup failed: %s", exc)
            raise InternalError() from exc
        if raw is None:
            raise NotFoundError("Session not found")
        try:
            return Session.from_json(token, raw)
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Corrupt session record for %s", _redact(token))
            raise InternalError() from exc

    def revoke(self, token: str) -> None:
        """Delete the session. Deleting an absent session is not an error."""
        try:
            self._kv.delete(_session_key(token))
        except KeyValueStoreError as exc:
            logger.error("Failed to revoke session %s: %s", _redact(token), exc)
            raise InternalError("Failed to logout") from exc
        logger.debug("Session %s revoked", _redact(token))
