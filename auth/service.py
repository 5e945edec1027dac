"""
Authentication core — register, login, logout and the "is this caller
authenticated" predicate behind the access gate.

Written once against ``SessionStore`` and the evidence types; which
backing and which evidence strategy are live is decided at startup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import BadRequestError, InternalError, UnauthorizedError
from auth.evidence import CredentialEvidence, Evidence, SessionEvidence
from auth.password import MAX_PASSWORD_BYTES, PasswordHasher
from auth.sessions import SessionStore
from database.helpers import add_user, find_user_by_username
from database.models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    user: User
    message: str
    session_id: Optional[str] = None


class AuthService:
    def __init__(
        self,
        hasher: PasswordHasher,
        sessions: SessionStore,
        *,
        issue_sessions: bool = True,
        session_on_register: bool = False,
    ) -> None:
        self.hasher = hasher
        self.sessions = sessions
        self.issue_sessions = issue_sessions
        self.session_on_register = session_on_register

    async def register(self, db: AsyncSession, username: str, password: str) -> AuthResult:
        """
        Hash the password and store the user.

        Raises ``ConflictError`` if the username is taken and
        ``InternalError`` if the store fails.
        """
        if not username or not password:
            raise BadRequestError("Username and password are required")

        try:
            password_hash = await self.hasher.hash_async(password)
        except ValueError as exc:
            raise BadRequestError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes") from exc
        try:
            user = await add_user(db, username, password_hash)
        except SQLAlchemyError as exc:
            logger.exception("Registration failed for %s", username)
            raise InternalError() from exc
        logger.info("Registered user %s (%s)", user.username, user.id)

        session_id = None
        if self.issue_sessions and self.session_on_register:
            session_id = await self._start_session(user.username)
        return AuthResult(user=user, message=f"Welcome {user.username}!", session_id=session_id)

    async def login(self, db: AsyncSession, username: str, password: str) -> AuthResult:
        """
        Check credentials and, for the session strategy, open a session.

        Unknown user and wrong password both raise the same
        ``UnauthorizedError``.
        """
        user = await self._lookup(db, username)
        if user is None:
            await self.hasher.burn_async(password)
        if user is None or not await self.hasher.verify_async(password, user.password_hash):
            logger.info("Login failed for %s", username)
            raise UnauthorizedError()

        session_id = None
        if self.issue_sessions:
            session_id = await self._start_session(user.username)
        logger.info("Login: %s (%s)", user.username, user.id)
        return AuthResult(user=user, message=f"Welcome {user.username}!", session_id=session_id)

    async def logout(self, session_id: Optional[str]) -> bool:
        """Destroy the session.  ``False`` only when the store is unreachable."""
        if not session_id:
            return True
        try:
            await self.sessions.destroy(session_id)
        except SQLAlchemyError:
            logger.exception("Logout failed for session %s…", session_id[:8])
            return False
        return True

    async def authenticate(self, db: AsyncSession, evidence: Evidence) -> Optional[str]:
        """Return the authenticated username for *evidence*, or ``None``."""
        if isinstance(evidence, CredentialEvidence):
            user = await self._lookup(db, evidence.username)
            if user is None:
                await self.hasher.burn_async(evidence.password)
                return None
            if not await self.hasher.verify_async(evidence.password, user.password_hash):
                return None
            return user.username

        if isinstance(evidence, SessionEvidence):
            try:
                session = await self.sessions.get(evidence.session_id)
            except SQLAlchemyError as exc:
                logger.exception("Session lookup failed")
                raise InternalError() from exc
            if session is None:
                return None
            if await self._lookup(db, session.username) is None:
                logger.warning(
                    "Session %s… references missing user %s",
                    evidence.session_id[:8], session.username,
                )
                return None
            return session.username

        return None

    async def is_authenticated(self, db: AsyncSession, evidence: Evidence) -> bool:
        return await self.authenticate(db, evidence) is not None

    # ── internals ──────────────────────────────────────────────────────

    async def _lookup(self, db: AsyncSession, username: str) -> Optional[User]:
        try:
            return await find_user_by_username(db, username)
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed for %s", username)
            raise InternalError() from exc

    async def _start_session(self, username: str) -> str:
        try:
            return await self.sessions.create(username)
        except SQLAlchemyError as exc:
            logger.exception("Could not create session for %s", username)
            raise InternalError() from exc
