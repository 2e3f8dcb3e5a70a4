"""
API request and response models for the Postboard HTTP endpoints.

These Pydantic v2 models define the HTTP transport contract. They are kept
separate from the dataclasses in auth/models.py and posts/models.py, which
own the internal domain representation. Route handlers map between the two.

Every JSON body the API returns carries a boolean `success`, except the
health and readiness checks.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from posts.models import Post

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /login."""

    username: str = Field(max_length=255)
    # bcrypt reads 72 bytes at most; the cap keeps inputs far from abuse sizes.
    password: str = Field(max_length=255)


class CreatePostRequest(BaseModel):
    """Request body for POST /post. Emptiness is checked by the handler."""

    content: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class StatusResponse(BaseModel):
    """The {success, message} envelope shared by every mutating endpoint and every error."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str


class LoginResponse(StatusResponse):
    session_id: Optional[str] = None


class CreatePostResponse(StatusResponse):
    post_id: int


class PostOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    username: str
    content: str
    created_at: datetime

    @classmethod
    def from_post(cls, post: Post) -> "PostOut":
        return cls(
            id=post.id,
            user_id=post.user_id,
            username=post.username,
            content=post.content,
            created_at=post.created_at,
        )


class PostsResponse(BaseModel):
    """Response body for GET /posts."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    posts: list[PostOut]


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"


class ReadyResponse(BaseModel):
    """Response for GET /ready."""

    model_config = ConfigDict(frozen=True)

    status: str
    reason: Optional[str] = None
