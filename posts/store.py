"""
posts/store.py -- SQLAlchemy Core persistence layer for posts.

Pattern: Repository + Data Mapper (same as auth/store.py).

The listing is a single JOIN against users so each post carries its author's
username; ordering is newest first with id as the tie-breaker for posts
created within the same clock tick.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, auth/, or cache/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from core.db import Database, posts, users
from core.errors import InternalError
from posts.models import Post

logger = logging.getLogger("postboard.posts")

RECENT_POSTS_LIMIT = 100


class PostStore:
    """Repository for Post entities.

    Usage:
        store = PostStore(db)
        post_id = store.create_post(user_id=1, content="hello")
        recent = store.list_recent()
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_post(self, user_id: int, content: str) -> int:
        """Insert a post and return its ID."""
        try:
            with self.db.engine.begin() as conn:
                result = conn.execute(
                    posts.insert().values(
                        user_id=user_id,
                        content=content,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        except SQLAlchemyError as exc:
            logger.exception("Failed to create post for user_id=%d", user_id)
            raise InternalError("Failed to create post") from exc
        return result.inserted_primary_key[0]

    def list_recent(self, limit: int = RECENT_POSTS_LIMIT) -> list[Post]:
        """Return up to `limit` posts, newest first, with author usernames."""
        query = (
            select(
                posts.c.id,
                posts.c.user_id,
                users.c.username,
                posts.c.content,
                posts.c.created_at,
            )
            .select_from(posts.join(users, posts.c.user_id == users.c.id))
            .order_by(posts.c.created_at.desc(), posts.c.id.desc())
            .limit(limit)
        )
        try:
            with self.db.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch posts")
            raise InternalError("Failed to fetch posts") from exc
        return [_row_to_post(r) for r in rows]


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        user_id=row.user_id,
        username=row.username,
        content=row.content,
        created_at=row.created_at,
    )
