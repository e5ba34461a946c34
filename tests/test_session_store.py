"""Tests for the in-memory and Redis session stores."""

import asyncio
import gc

import pytest
import pytest_asyncio
from fakeredis import aioredis

from ticket_sales_platform.cache import CacheKeyBuilder, RedisCache
from ticket_sales_platform.schemas.inventory import LockOutcome
from ticket_sales_platform.schemas.session import SelectedSeat, SessionStage
from ticket_sales_platform.services.session_store import InMemorySessionStore, RedisSessionStore


@pytest_asyncio.fixture
async def redis_cache():
    """Redis cache over an in-process fake server"""
    cache = RedisCache(client=aioredis.FakeRedis())
    yield cache
    await cache.client.flushall()


@pytest.fixture(params=["memory", "redis"])
def session_store(request, redis_cache):
    if request.param == "memory":
        return InMemorySessionStore()
    return RedisSessionStore(redis_cache=redis_cache, ttl_seconds=60)


class TestSessionStore:
    """Behaviour shared by every backend"""

    async def test_missing_session_is_empty(self, session_store):
        session = await session_store.load("nobody")
        assert session.stage == SessionStage.EMPTY

    async def test_edit_persists_changes(self, session_store):
        async with session_store.edit("p1") as session:
            session.event_id = 7
            session.stage = SessionStage.SEATS_LOCKED
            session.selected_seats = [SelectedSeat(row="B", column=3)]
            session.last_lock = LockOutcome(succeeded=True, message="ok")

        loaded = await session_store.load("p1")
        assert loaded.event_id == 7
        assert loaded.stage == SessionStage.SEATS_LOCKED
        assert loaded.selected_seats[0].key == "B-3"
        assert loaded.last_lock.succeeded

    async def test_failed_edit_is_discarded(self, session_store):
        async with session_store.edit("p1") as session:
            session.event_id = 7

        with pytest.raises(RuntimeError):
            async with session_store.edit("p1") as session:
                session.event_id = 8
                raise RuntimeError("abort")

        assert (await session_store.load("p1")).event_id == 7

    async def test_reset_is_idempotent(self, session_store):
        async with session_store.edit("p1") as session:
            session.event_id = 7

        await session_store.reset("p1")
        await session_store.reset("p1")

        assert (await session_store.load("p1")).stage == SessionStage.EMPTY

    async def test_concurrent_edits_are_serialized(self, session_store):
        async def add_seat(column):
            async with session_store.edit("p1") as session:
                seats = list(session.selected_seats)
                await asyncio.sleep(0.01)
                session.selected_seats = seats + [SelectedSeat(row="A", column=column)]

        await asyncio.gather(*(add_seat(column) for column in range(1, 5)))

        session = await session_store.load("p1")
        assert sorted(seat.column for seat in session.selected_seats) == [1, 2, 3, 4]


class TestRedisSessionStore:
    """Redis specifics"""

    async def test_session_expires(self, redis_cache):
        store = RedisSessionStore(redis_cache=redis_cache, ttl_seconds=60)
        async with store.edit("p1") as session:
            session.event_id = 7

        ttl = await redis_cache.client.ttl(CacheKeyBuilder.booking_session("p1"))
        assert 0 < ttl <= 60

    async def test_lock_is_released_after_edit(self, redis_cache):
        store = RedisSessionStore(redis_cache=redis_cache, ttl_seconds=60)
        async with store.edit("p1") as session:
            session.event_id = 7

        assert await redis_cache.client.exists(CacheKeyBuilder.session_lock("p1")) == 0


class TestInMemorySessionStore:
    """Process-local specifics"""

    async def test_idle_locks_are_dropped(self):
        store = InMemorySessionStore()
        for principal in ("p1", "p2", "p3"):
            async with store.edit(principal) as session:
                session.event_id = 7
        await store.reset("p1")

        gc.collect()
        assert len(store._locks) == 0
        assert (await store.load("p2")).event_id == 7
