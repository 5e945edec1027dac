"""
REST API routes — liveness and the protected user listing.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, require_authenticated
from auth.errors import InternalError
from database.helpers import list_users
from utils.schemas import UserOut, redact_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return "It's alive!"


@router.get("/api/users", response_model=List[UserOut])
async def get_users(
    session: AsyncSession = Depends(db_session),
    username: str = Depends(require_authenticated),
) -> List[UserOut]:
    """List every registered user (hashes stripped)."""
    try:
        users = await list_users(session)
    except SQLAlchemyError as exc:
        logger.exception("Listing users failed")
        raise InternalError() from exc
    logger.debug("%s listed %d users", username, len(users))
    return [redact_user(u) for u in users]
