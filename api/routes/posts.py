"""
api/routes/posts.py -- Create and list posts.

Routes:
  POST /post   -- create a post as the session's user
  GET  /posts  -- the 100 most recent posts, newest first
"""

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from api.models import CreatePostRequest, CreatePostResponse, PostOut, PostsResponse
from auth.dependencies import require_identity
from auth.models import Identity
from core.errors import ValidationError
from posts.store import PostStore

logger = logging.getLogger("postboard.posts")

# Auth policy:
# - POST /post:  requires a session (identity parameter)
# - GET  /posts: requires a session
# Router-level dependency enforces auth; list_posts does not repeat it.
router = APIRouter(dependencies=[Depends(require_identity)])


def _post_store(request: Request) -> PostStore:
    return request.app.state.post_store


@router.post(
    "/post",
    response_model=CreatePostResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": CreatePostRequest.model_json_schema()}},
        }
    },
)
async def create_post(
    request: Request,
    identity: Identity = Depends(require_identity),
    store: PostStore = Depends(_post_store),
) -> CreatePostResponse:
    """Create a post authored by the session's user.

    The body is read here rather than declared as a parameter: FastAPI
    decodes declared bodies before dependencies run, and a request without
    a valid session must get 401 whatever its body holds.
    """
    try:
        body = CreatePostRequest.model_validate_json(await request.body())
    except PydanticValidationError as exc:
        logger.debug("Rejected POST /post body: %s", exc.errors())
        raise ValidationError() from exc
    if not body.content:
        raise ValidationError("Content cannot be empty")
    post_id = await run_in_threadpool(store.create_post, identity.user_id, body.content)
    return CreatePostResponse(success=True, message="Post created", post_id=post_id)


@router.get("/posts", response_model=PostsResponse)
def list_posts(store: PostStore = Depends(_post_store)) -> PostsResponse:
    """Return up to 100 posts, newest first, each with its author's username."""
    return PostsResponse(posts=[PostOut.from_post(p) for p in store.list_recent()])
