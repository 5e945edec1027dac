"""
Auth API routes — register, login, logout.

Route prefix: /api
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth.cookies import clear_session_cookie, set_session_cookie
from auth.dependencies import db_session, get_auth_service, get_evidence_extractor
from auth.evidence import EvidenceExtractor, SessionEvidence
from auth.service import AuthService
from utils.schemas import Credentials, MessageOut, UserOut, redact_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

# Mounted only for the session strategy (see main.create_app).
session_router = APIRouter(tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    req: Credentials,
    response: Response,
    session: AsyncSession = Depends(db_session),
    auth: AuthService = Depends(get_auth_service),
) -> UserOut:
    """Register a new user.  The password hash never leaves the server."""
    result = await auth.register(session, req.username, req.password)
    if result.session_id:
        set_session_cookie(response, result.session_id, auth.sessions.policy)
    return redact_user(result.user)


@router.post("/login", response_model=MessageOut)
async def login(
    req: Credentials,
    response: Response,
    session: AsyncSession = Depends(db_session),
    auth: AuthService = Depends(get_auth_service),
) -> MessageOut:
    """Login with username + password."""
    result = await auth.login(session, req.username, req.password)
    if result.session_id:
        set_session_cookie(response, result.session_id, auth.sessions.policy)
    return MessageOut(message=result.message)


@session_router.get("/logout", response_class=PlainTextResponse)
async def logout(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
    extractor: EvidenceExtractor = Depends(get_evidence_extractor),
) -> PlainTextResponse:
    """Destroy the caller's session.  Succeeds even if there was none."""
    evidence = extractor.extract(request)
    session_id: Optional[str] = (
        evidence.session_id if isinstance(evidence, SessionEvidence) else None
    )
    if not await auth.logout(session_id):
        return PlainTextResponse(
            "Error logging out", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = PlainTextResponse("Goodbye, thanks for visiting!")
    clear_session_cookie(response, auth.sessions.policy)
    return response
