"""
FastAPI dependencies for authentication.

Provides ``db_session``, ``get_auth_service`` and ``require_authenticated``
— the access gate placed in front of every protected route.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from auth.cookies import set_session_cookie
from auth.errors import UnauthorizedError
from auth.evidence import EvidenceExtractor, SessionEvidence
from auth.service import AuthService
from database.session import get_db_session

logger = logging.getLogger(__name__)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_evidence_extractor(request: Request) -> EvidenceExtractor:
    return request.app.state.evidence_extractor


async def require_authenticated(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(db_session),
    auth: AuthService = Depends(get_auth_service),
    extractor: EvidenceExtractor = Depends(get_evidence_extractor),
) -> str:
    """
    Let the request through only if its evidence authenticates.

    Returns the username; raises the extractor's "missing" error when no
    evidence was sent and ``UnauthorizedError`` when it does not check out.
    """
    evidence = extractor.extract(request)
    if evidence is None:
        logger.debug("No evidence on %s %s", request.method, request.url.path)
        raise extractor.missing_evidence_error()

    username = await auth.authenticate(session, evidence)
    if username is None:
        logger.info("Rejected %s %s (%s strategy)", request.method, request.url.path, extractor.name)
        raise UnauthorizedError()

    if isinstance(evidence, SessionEvidence) and auth.sessions.policy.rolling:
        if await auth.sessions.touch(evidence.session_id):
            set_session_cookie(response, evidence.session_id, auth.sessions.policy)

    request.state.username = username
    return username
