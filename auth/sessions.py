"""
Server-side session store.

``SessionStore`` owns token generation and expiry; the storage itself is a
pluggable ``SessionBacking``:

  • ``InMemorySessionBacking`` — a process-local dict, lost on restart
  • ``DatabaseSessionBacking`` — the ``sessions`` table, shared by every
    worker and surviving restarts

Expired sessions are dropped lazily on read and in bulk by
``run_session_sweeper``.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import SessionPolicy
from database.models import SessionRecord
from database.session import build_session_factory

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SessionData:
    session_id: str
    username: str
    created_at: datetime
    expires_at: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


# ── Backings ────────────────────────────────────────────────────────────


class SessionBacking(ABC):
    """Storage contract used by ``SessionStore``."""

    @abstractmethod
    async def save(self, record: SessionData) -> None:
        ...

    @abstractmethod
    async def load(self, session_id: str) -> Optional[SessionData]:
        ...

    @abstractmethod
    async def update_expiry(self, session_id: str, expires_at: datetime) -> bool:
        """Move the expiry of an existing record; ``False`` if it is gone."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove a record.  Removing an unknown id is not an error."""
        ...

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Remove every record expired at *now*; return how many went."""
        ...


class InMemorySessionBacking(SessionBacking):
    def __init__(self) -> None:
        self._records: Dict[str, SessionData] = {}

    async def save(self, record: SessionData) -> None:
        self._records[record.session_id] = record

    async def load(self, session_id: str) -> Optional[SessionData]:
        return self._records.get(session_id)

    async def update_expiry(self, session_id: str, expires_at: datetime) -> bool:
        record = self._records.get(session_id)
        if record is None:
            return False
        self._records[session_id] = replace(record, expires_at=expires_at)
        return True

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    async def delete_expired(self, now: datetime) -> int:
        expired = [sid for sid, rec in list(self._records.items()) if rec.is_expired(now)]
        for sid in expired:
            self._records.pop(sid, None)
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


class DatabaseSessionBacking(SessionBacking):
    """
    Sessions persisted in the ``sessions`` table.

    Each call runs in its own short transaction so sweeps and request
    reads serialize at the database.  The table is created on first use
    if it is missing.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = build_session_factory(engine)
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self._engine.begin() as conn:
                await conn.run_sync(
                    lambda sync_conn: SessionRecord.__table__.create(sync_conn, checkfirst=True)
                )
            self._schema_ready = True
            logger.info("Session table ready")

    async def save(self, record: SessionData) -> None:
        await self._ensure_schema()
        async with self._session_factory() as session:
            session.add(
                SessionRecord(
                    sid=record.session_id,
                    username=record.username,
                    created_at=record.created_at,
                    expires_at=record.expires_at,
                    data=dict(record.data),
                )
            )
            await session.commit()

    async def load(self, session_id: str) -> Optional[SessionData]:
        await self._ensure_schema()
        async with self._session_factory() as session:
            result = await session.execute(
                select(SessionRecord).where(SessionRecord.sid == session_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return SessionData(
                session_id=row.sid,
                username=row.username,
                created_at=_as_utc(row.created_at),
                expires_at=_as_utc(row.expires_at),
                data=dict(row.data or {}),
            )

    async def update_expiry(self, session_id: str, expires_at: datetime) -> bool:
        await self._ensure_schema()
        async with self._session_factory() as session:
            result = await session.execute(
                update(SessionRecord)
                .where(SessionRecord.sid == session_id)
                .values(expires_at=expires_at)
            )
            await session.commit()
            return result.rowcount > 0

    async def delete(self, session_id: str) -> None:
        await self._ensure_schema()
        async with self._session_factory() as session:
            await session.execute(
                delete(SessionRecord).where(SessionRecord.sid == session_id)
            )
            await session.commit()

    async def delete_expired(self, now: datetime) -> int:
        await self._ensure_schema()
        async with self._session_factory() as session:
            result = await session.execute(
                delete(SessionRecord).where(SessionRecord.expires_at <= now)
            )
            await session.commit()
            return result.rowcount or 0


# ── Store ───────────────────────────────────────────────────────────────


class SessionStore:
    """Creates, resolves and invalidates sessions on top of a backing."""

    def __init__(
        self,
        backing: SessionBacking,
        policy: SessionPolicy,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self.backing = backing
        self.policy = policy
        self._clock = clock or _utcnow

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.policy.max_age_seconds)

    async def create(self, username: str, data: Optional[Dict[str, Any]] = None) -> str:
        """Start a session for *username* and return its token."""
        now = self._clock()
        session_id = secrets.token_urlsafe(32)
        await self.backing.save(
            SessionData(
                session_id=session_id,
                username=username,
                created_at=now,
                expires_at=now + self.max_age,
                data=dict(data or {}),
            )
        )
        logger.info("Session created for %s (%s…)", username, session_id[:8])
        return session_id

    async def get(self, session_id: str) -> Optional[SessionData]:
        """Return the live session, or ``None`` if unknown or expired."""
        if not session_id:
            return None
        record = await self.backing.load(session_id)
        if record is None:
            return None
        if record.is_expired(self._clock()):
            await self.backing.delete(session_id)
            logger.debug("Dropped expired session %s…", session_id[:8])
            return None
        return record

    async def touch(self, session_id: str) -> bool:
        """Push the expiry of a live session out by another max-age."""
        if await self.get(session_id) is None:
            return False
        return await self.backing.update_expiry(session_id, self._clock() + self.max_age)

    async def destroy(self, session_id: str) -> None:
        if not session_id:
            return
        await self.backing.delete(session_id)
        logger.info("Session destroyed (%s…)", session_id[:8])

    async def sweep(self) -> int:
        removed = await self.backing.delete_expired(self._clock())
        if removed:
            logger.info("Swept %d expired sessions", removed)
        return removed


def build_session_store(
    policy: SessionPolicy,
    engine: AsyncEngine,
    *,
    clock: Optional[Clock] = None,
) -> SessionStore:
    """Pick the backing named by ``policy.backing``."""
    if policy.backing == "database":
        backing: SessionBacking = DatabaseSessionBacking(engine)
    else:
        backing = InMemorySessionBacking()
    logger.info("Session backing: %s", policy.backing)
    return SessionStore(backing, policy, clock=clock)


async def run_session_sweeper(store: SessionStore, interval_seconds: float) -> None:
    """Background loop: purge expired sessions every *interval_seconds*."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await store.sweep()
        except Exception:
            logger.exception("Session sweep failed")
