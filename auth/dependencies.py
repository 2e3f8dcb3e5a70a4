"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session id travels in the X-Session-ID request header. require_identity()
hands it to the AuthGate built in the API lifespan and returns the resolved
Identity, which FastAPI passes to the route as a regular parameter. Nothing
is stashed on request.state.

Missing header   -> Unauthorized("No session ID provided")     401
Unknown/expired  -> Unauthorized("Invalid or expired session") 401
Store failure    -> InternalError                              500

Layer rule: no imports from posts/ or cache/.
  auth/dependencies.py may import from fastapi (for Header/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, Request

from auth.gate import AuthGate
from auth.models import Identity

SESSION_HEADER = "X-Session-ID"


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def require_identity(
    request: Request,
    x_session_id: Optional[str] = Header(default=None, alias=SESSION_HEADER),
) -> Identity:
    """Require a live session. Raises Unauthorized if there is none.

    Use as a FastAPI dependency:
        @router.post("/protected")
        def route(identity: Identity = Depends(require_identity)): ...
    """
    return get_auth_gate(request).authorize(x_session_id)
