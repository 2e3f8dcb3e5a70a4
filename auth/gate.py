"""
auth/gate.py -- Login, per-request authorization and logout.

AuthGate is a mediator: it owns no state of its own. Credentials live in the
UserStore, sessions in the SessionStore, and both are handed in at
construction. That makes the gate safe to share across request threads
without locking.

Session lifecycle:

    Absent --login--> Active --logout / TTL expiry--> Absent

There is no renewal path.

Logout performs no ownership check: whoever presents a session id can revoke
that session. Holding the token is the only proof the gate asks for.

Layer rule: no imports from api/ or posts/.
"""

from __future__ import annotations

import logging

from auth.models import Identity
from auth.passwords import verify_credentials
from auth.sessions import SessionStore
from auth.store import UserStore
from core.errors import NotFoundError, Unauthorized, ValidationError

logger = logging.getLogger("postboard.auth")


class AuthGate:
    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions

    def login(self, username: str, password: str) -> str:
        """Verify credentials and open a session. Returns the session token.

        Raises InvalidCredentials on a bad username/password (no session is
        created), InternalError on store failure.
        """
        user = verify_credentials(self.users, username, password)
        token = self.sessions.create_session(user.id, user.username)
        logger.info("User %r logged in", user.username)
        return token

    def authorize(self, token: str | None) -> Identity:
        """Resolve a session token to the identity behind it.

        Called once per protected request; the result is not cached.
        """
        if not token:
            raise Unauthorized("No session ID provided")
        try:
            session = self.sessions.lookup(token)
        except NotFoundError as exc:
            raise Unauthorized("Invalid or expired session") from exc
        return session.identity

    def logout(self, token: str) -> None:
        """Revoke the session. Idempotent.

        A missing token is a malformed request (400), not an auth failure.
        """
        if not token:
            raise ValidationError("No session ID provided")
        self.sessions.revoke(token)
