"""
Pydantic schemas for request bodies and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from auth.password import MAX_PASSWORD_BYTES
from database.models import User


class Credentials(BaseModel):
    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def _fits_bcrypt(cls, value: str) -> str:
        # max_length counts characters; bcrypt's limit is in bytes
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class UserOut(BaseModel):
    """Public view of a user.  There is deliberately no password field."""

    id: str
    username: str
    created_at: Optional[datetime] = None


class MessageOut(BaseModel):
    message: str


def redact_user(user: User) -> UserOut:
    """Shape a stored user for output, dropping the password hash."""
    return UserOut(id=user.id, username=user.username, created_at=user.created_at)
