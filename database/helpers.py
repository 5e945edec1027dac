"""
User store — persist and look up ``User`` rows.

The unique index on ``users.username`` is the only guard against two
concurrent registrations of the same name; the loser gets ``ConflictError``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import ConflictError
from database.models import User

logger = logging.getLogger(__name__)


async def add_user(session: AsyncSession, username: str, password_hash: str) -> User:
    """Insert and commit a new user; raises ``ConflictError`` on a taken name."""
    user = User(username=username, password_hash=password_hash)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info("Username %s already taken", username)
        raise ConflictError() from exc
    await session.refresh(user)
    return user


async def find_user_by_username(session: AsyncSession, username: str) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.username == username)
    )
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession) -> List[User]:
    result = await session.execute(
        select(User).order_by(User.created_at.asc(), User.username.asc())
    )
    return list(result.scalars().all())

