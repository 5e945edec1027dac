"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

import asyncio
import secrets
from typing import Optional

import bcrypt

DEFAULT_ROUNDS = 10

# bcrypt only reads the first 72 bytes; longer inputs are refused, not truncated.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt hasher with a fixed work factor."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash: Optional[str] = None

    def hash(self, password: str) -> str:
        """Hash a password (auto-salted, so equal inputs give different hashes)."""
        if not password:
            raise ValueError("Refusing to hash an empty password")
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password longer than {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time comparison against a bcrypt hash; malformed hashes give False."""
        if not password or not password_hash:
            return False
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except (ValueError, TypeError):
            return False

    def dummy_hash(self) -> str:
        """A hash at this work factor that no caller knows the password of."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(secrets.token_urlsafe(32))
        return self._dummy_hash

    # The caller still awaits the result, only the event loop is freed.

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.verify, password, password_hash)

    async def burn_async(self, password: str) -> None:
        """Spend one verify's worth of time for a user that does not exist."""
        await asyncio.to_thread(self.verify, password, self.dummy_hash())
