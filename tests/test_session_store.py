"""
Tests for the session store and both of its backings.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import inspect

from auth.sessions import (
    DatabaseSessionBacking,
    InMemorySessionBacking,
    SessionStore,
    build_session_store,
    run_session_sweeper,
)
from config.settings import SessionPolicy


@pytest_asyncio.fixture(params=["memory", "database"])
async def store(request, engine, policy, clock):
    if request.param == "database":
        backing = DatabaseSessionBacking(engine)
    else:
        backing = InMemorySessionBacking()
    return SessionStore(backing, policy, clock=clock)


class TestSessionLifecycle:
    @pytest.mark.asyncio
    async def test_create_then_get(self, store, clock):
        sid = await store.create("alice")
        session = await store.get(sid)
        assert session is not None
        assert session.username == "alice"
        assert session.created_at == clock.now
        assert (session.expires_at - session.created_at).total_seconds() == 900

    @pytest.mark.asyncio
    async def test_tokens_are_unique_per_create(self, store):
        ids = await asyncio.gather(*(store.create("alice") for _ in range(5)))
        assert len(set(ids)) == 5
        for sid in ids:
            assert (await store.get(sid)).username == "alice"

    @pytest.mark.asyncio
    async def test_unknown_token_is_absent(self, store):
        assert await store.get("no-such-session") is None
        assert await store.get("") is None

    @pytest.mark.asyncio
    async def test_expired_without_sweep(self, store, clock):
        sid = await store.create("alice")
        clock.advance(seconds=899)
        assert await store.get(sid) is not None
        clock.advance(seconds=1)
        assert await store.get(sid) is None
        # lazily removed
        assert await store.backing.load(sid) is None

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, store):
        sid = await store.create("alice")
        await store.destroy(sid)
        assert await store.get(sid) is None
        await store.destroy(sid)
        await store.destroy("")

    @pytest.mark.asyncio
    async def test_touch_extends_expiry(self, store, clock):
        sid = await store.create("alice")
        clock.advance(minutes=10)
        assert await store.touch(sid) is True
        clock.advance(minutes=10)
        assert await store.get(sid) is not None
        clock.advance(minutes=5)
        assert await store.get(sid) is None

    @pytest.mark.asyncio
    async def test_touch_on_missing_session(self, store):
        assert await store.touch("gone") is False

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, store, clock):
        old = await store.create("alice")
        clock.advance(minutes=10)
        fresh = await store.create("bob")
        clock.advance(minutes=6)

        assert await store.sweep() == 1
        assert await store.backing.load(old) is None
        assert (await store.get(fresh)).username == "bob"

    @pytest.mark.asyncio
    async def test_payload_round_trips(self, store):
        sid = await store.create("alice", data={"device": "phone"})
        assert (await store.get(sid)).data == {"device": "phone"}


class TestDatabaseBacking:
    @pytest.mark.asyncio
    async def test_creates_table_on_first_use(self, engine, policy):
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
        assert "sessions" not in tables

        store = SessionStore(DatabaseSessionBacking(engine), policy)
        sid = await store.create("alice")

        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
        assert "sessions" in tables
        assert await store.get(sid) is not None

    @pytest.mark.asyncio
    async def test_survives_a_new_store_instance(self, engine, policy, clock):
        first = SessionStore(DatabaseSessionBacking(engine), policy, clock=clock)
        sid = await first.create("alice")

        second = SessionStore(DatabaseSessionBacking(engine), policy, clock=clock)
        session = await second.get(sid)
        assert session is not None
        assert session.expires_at.tzinfo is not None


class TestBuildAndSweeper:
    def test_build_picks_backing(self, engine):
        memory = build_session_store(SessionPolicy(backing="memory"), engine)
        durable = build_session_store(SessionPolicy(backing="database"), engine)
        assert isinstance(memory.backing, InMemorySessionBacking)
        assert isinstance(durable.backing, DatabaseSessionBacking)

    @pytest.mark.asyncio
    async def test_sweeper_purges_in_background(self, policy, clock):
        backing = InMemorySessionBacking()
        store = SessionStore(backing, policy, clock=clock)
        await store.create("alice")
        await store.create("bob")
        clock.advance(hours=1)

        task = asyncio.create_task(run_session_sweeper(store, 0.01))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(backing) == 0

    @pytest.mark.asyncio
    async def test_sweeper_keeps_running_after_failure(self, policy, clock):
        store = SessionStore(InMemorySessionBacking(), policy, clock=clock)
        calls = []

        async def flaky_sweep():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("store down")
            return 0

        store.sweep = flaky_sweep
        task = asyncio.create_task(run_session_sweeper(store, 0.01))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(calls) >= 2
