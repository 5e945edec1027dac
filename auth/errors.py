"""
Authentication error taxonomy.

Every error carries the HTTP status and the client-facing message; the
handlers in ``api.middleware`` turn them into ``{"message": ...}`` bodies.
"""

from __future__ import annotations

from fastapi import status

INVALID_CREDENTIALS = "Invalid Credentials"
NO_CREDENTIALS = "No credentials provided"
UNEXPECTED_ERROR = "Ran into an unexpected error"


class AuthError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = UNEXPECTED_ERROR

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConflictError(AuthError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Username already taken"


class UnauthorizedError(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = INVALID_CREDENTIALS


class BadRequestError(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Malformed request"


class InternalError(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = UNEXPECTED_ERROR
