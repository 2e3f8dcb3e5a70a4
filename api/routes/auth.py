"""
api/routes/auth.py -- Session login and logout endpoints.

Routes:
  POST /login   -- password login; returns a session id
  POST /logout  -- revokes the session named by X-Session-ID

Security:
  verify_credentials() (via AuthGate.login) equalizes timing between unknown
  usernames and wrong passwords, and both produce the same 401 body.
  Cache-Control: no-store on every login response, failures included, so
  the session id is never cached by intermediaries.
  Logout needs no prior authorization: presenting the session id is enough
  to revoke it.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, StatusResponse
from auth.dependencies import SESSION_HEADER, get_auth_gate
from auth.gate import AuthGate
from core.errors import AppError

logger = logging.getLogger("postboard.auth")

# Auth policy:
# - POST /login:  public -- login endpoint must be unauthenticated
# - POST /logout: public -- the session id in the header is the credential
router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, gate: AuthGate = Depends(get_auth_gate)) -> JSONResponse:
    """Authenticate with username and password; return a new session id."""
    try:
        token = gate.login(body.username, body.password)
    except AppError as exc:
        if exc.status >= 500:
            logger.error("%s during login", type(exc).__name__)
        resp = JSONResponse(
            status_code=exc.status,
            content=LoginResponse(success=False, message=exc.message).model_dump(exclude_none=True),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        content=LoginResponse(success=True, message="Login successful", session_id=token).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/logout", response_model=StatusResponse)
def logout(
    x_session_id: Optional[str] = Header(default=None, alias=SESSION_HEADER),
    gate: AuthGate = Depends(get_auth_gate),
) -> StatusResponse:
    """Revoke the session named in X-Session-ID. Succeeds for unknown ids too."""
    gate.logout(x_session_id)
    return StatusResponse(success=True, message="Logout successful")
