"""
Storage for per-principal booking sessions.

Every mutation goes through ``SessionStore.edit``, which serializes
read-modify-write cycles for one principal and only persists the session when
the edit completes without raising.
"""

import asyncio
import logging
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from ..cache import CacheKeyBuilder, RedisCache, distributed_lock, get_cache
from ..config import get_settings
from ..schemas.session import BookingSession

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Holds one mutable ``BookingSession`` per authenticated principal."""

    @abstractmethod
    async def load(self, principal_id: str) -> BookingSession:
        """Return the principal's session, or a fresh empty one."""

    @abstractmethod
    async def save(self, principal_id: str, session: BookingSession) -> None:
        """Persist the principal's session."""

    @abstractmethod
    async def delete(self, principal_id: str) -> None:
        """Drop the principal's session. Deleting a missing session is a no-op."""

    @abstractmethod
    def _lock(self, principal_id: str):
        """Async context manager guarding one principal's session."""

    @asynccontextmanager
    async def edit(self, principal_id: str) -> AsyncIterator[BookingSession]:
        """
        Read-modify-write a session under the principal's lock.

        Usage:
            async with store.edit(principal_id) as session:
                session.event_id = 42
        """
        async with self._lock(principal_id):
            session = await self.load(principal_id)
            yield session
            session.touch()
            await self.save(principal_id, session)

    async def reset(self, principal_id: str) -> None:
        """Delete the session under the principal's lock."""
        async with self._lock(principal_id):
            await self.delete(principal_id)


class InMemorySessionStore(SessionStore):
    """Process-local store, suitable for a single worker and for tests."""

    def __init__(self):
        self._sessions: Dict[str, str] = {}
        # Entries vanish once no edit holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock(self, principal_id: str) -> asyncio.Lock:
        lock = self._locks.get(principal_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[principal_id] = lock
        return lock

    async def load(self, principal_id: str) -> BookingSession:
        raw = self._sessions.get(principal_id)
        if raw is None:
            return BookingSession()
        return BookingSession.model_validate_json(raw)

    async def save(self, principal_id: str, session: BookingSession) -> None:
        # Stored serialized so callers never share a live object with the store.
        self._sessions[principal_id] = session.model_dump_json()

    async def delete(self, principal_id: str) -> None:
        self._sessions.pop(principal_id, None)


class RedisSessionStore(SessionStore):
    """Store shared by every worker, backed by Redis with a per-principal lock."""

    def __init__(self, redis_cache: Optional[RedisCache] = None, ttl_seconds: Optional[int] = None):
        self.cache = redis_cache or get_cache()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().session_ttl_seconds

    def _lock(self, principal_id: str):
        return distributed_lock(CacheKeyBuilder.session_lock(principal_id), redis_cache=self.cache)

    async def load(self, principal_id: str) -> BookingSession:
        data = await self.cache.get(CacheKeyBuilder.booking_session(principal_id))
        if data is None:
            return BookingSession()
        return BookingSession.model_validate(data)

    async def save(self, principal_id: str, session: BookingSession) -> None:
        await self.cache.set(
            CacheKeyBuilder.booking_session(principal_id),
            session.model_dump(mode="json"),
            self.ttl_seconds,
        )

    async def delete(self, principal_id: str) -> None:
        await self.cache.delete(CacheKeyBuilder.booking_session(principal_id))


def create_session_store() -> SessionStore:
    """Build the store selected by ``settings.session_backend``."""
    backend = get_settings().session_backend.lower()
    if backend == "redis":
        logger.info("Using Redis booking session store")
        return RedisSessionStore()
    if backend != "memory":
        raise ValueError(f"Unknown session backend: {backend}")
    logger.info("Using in-memory booking session store")
    return InMemorySessionStore()
