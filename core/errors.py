"""
core/errors.py -- Application error taxonomy.

Every failure that reaches the HTTP boundary is one of these kinds. Each
carries the status code it maps to and a message that is safe to show to
clients. Internal details (SQL errors, connection strings, Redis replies)
belong in the chained __cause__ and in the server log, never in `message`.

    ValidationError   400  malformed or missing input
    AuthError         401  bad credentials, missing/invalid/expired session
    NotFoundError     404  record absent (the auth gate turns a missing
                           session into Unauthorized before it reaches HTTP)
    InternalError     500  store unreachable or query failure

api/main.py registers one exception handler for AppError that renders
{"success": false, "message": ...} with the carried status.
"""

from __future__ import annotations

from http import HTTPStatus


class AppError(Exception):
    """Base class for errors with a defined HTTP mapping."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status = HTTPStatus.BAD_REQUEST
    default_message = "Invalid request"


class AuthError(AppError):
    status = HTTPStatus.UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidCredentials(AuthError):
    """Unknown username or wrong password. The two are never distinguished externally."""

    default_message = "Invalid credentials"


class Unauthorized(AuthError):
    """A protected request without a usable session."""

    default_message = "Invalid or expired session"


class NotFoundError(AppError):
    status = HTTPStatus.NOT_FOUND
    default_message = "Not found"


class InternalError(AppError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message = "Server error"
