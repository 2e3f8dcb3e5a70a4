"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond (de)serialization
of the session record). Stores and the auth gate do the work.

Layer rule: no imports from api/, posts/, or cache/.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A local account. Seeded at startup or created via the CLI; never edited."""

    username: str
    password_hash: str
    id: int | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Identity:
    """Who is making the current request.

    Returned by AuthGate.authorize() and handed to the protected handler as a
    parameter. Lives for one request only.
    """

    user_id: int
    username: str


@dataclass(frozen=True)
class Session:
    """A server-side session record.

    The token is the key, not part of the stored payload: the value kept in
    the key-value store is {"user_id", "username", "created_at"}.
    """

    token: str
    user_id: int
    username: str
    created_at: datetime

    @property
    def identity(self) -> Identity:
        return Identity(user_id=self.user_id, username=self.username)

    def to_json(self) -> str:
        return json.dumps(
            {
                "user_id": self.user_id,
                "username": self.username,
                "created_at": self.created_at.isoformat(),
            }
        )

    @classmethod
    def from_json(cls, token: str, raw: str) -> "Session":
        """Rebuild a Session from its stored payload.

        Raises ValueError (json.JSONDecodeError is a subclass), KeyError or
        TypeError on a malformed record; the session store turns those into
        an internal error.
        """
        data = json.loads(raw)
        return cls(
            token=token,
            user_id=int(data["user_id"]),
            username=str(data["username"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
