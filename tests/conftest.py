"""
Shared fixtures: isolated settings, a temp SQLite engine, a fake clock.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from config.settings import SessionPolicy, Settings
from database.session import build_engine, build_session_factory, create_schema


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _settings_for(tmp_path: Path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "session_secret": "test-secret",
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def make_settings(tmp_path):
    """Build isolated ``Settings`` (temp SQLite file, cheap bcrypt)."""
    return lambda **overrides: _settings_for(tmp_path, **overrides)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def policy() -> SessionPolicy:
    return SessionPolicy(secret="test-secret", max_age_seconds=900)


@pytest_asyncio.fixture()
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture()
async def db(engine):
    await create_schema(engine)
    factory = build_session_factory(engine)
    async with factory() as session:
        yield session
