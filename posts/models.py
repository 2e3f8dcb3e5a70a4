"""
posts/models.py -- Domain dataclass for posts.

Layer rule: no imports from api/, auth/, or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Post:
    """A text post. username is filled in when listing (joined from users)."""

    user_id: int
    content: str
    id: int | None = None
    username: str | None = None
    created_at: datetime | None = None
