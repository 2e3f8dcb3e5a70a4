"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. The auth gate and route code never touch SQL directly.

Errors: any SQLAlchemyError is logged and re-raised as InternalError with the
driver exception chained. IntegrityError on create_user is the exception:
it propagates unchanged so callers can report a duplicate username.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, posts/, or cache/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.db import Database, users
from core.errors import InternalError

logger = logging.getLogger("postboard.auth")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(db)
        user_id = store.create_user(User(username="alice", password_hash=hash_password("secret")))
        user = store.get_by_username("alice")
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the username already exists.
        """
        try:
            with self.db.engine.begin() as conn:
                result = conn.execute(
                    users.insert().values(
                        username=user.username,
                        password_hash=user.password_hash,
                        created_at=_now(),
                    )
                )
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Failed to create user %r", user.username)
            raise InternalError() from exc
        return result.inserted_primary_key[0]

    def ensure_user(self, username: str, password_hash: str) -> bool:
        """Create the user unless the username is taken. Returns True if created.

        Used for the startup seed account. Existing rows are left untouched,
        including their password hash.
        """
        if self.get_by_username(username) is not None:
            return False
        try:
            self.create_user(User(username=username, password_hash=password_hash))
        except IntegrityError:
            # Another worker seeded it between the check and the insert.
            return False
        return True

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        try:
            with self.db.engine.connect() as conn:
                row = conn.execute(users.select().where(users.c.username == username)).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed")
            raise InternalError() from exc
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        try:
            with self.db.engine.connect() as conn:
                row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed")
            raise InternalError() from exc
        return _row_to_user(row) if row is not None else None


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
