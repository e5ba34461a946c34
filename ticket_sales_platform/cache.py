"""
Redis layer backing the shared booking session store.
"""

import json
import logging
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError
from redis.exceptions import ConnectionError as RedisConnectionError

from .config import get_settings
from .utils.exceptions import CacheServiceError

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Helper class for building consistent cache keys."""

    @staticmethod
    def booking_session(principal_id: str) -> str:
        """Build cache key for a principal's booking session."""
        return f"session:booking:{principal_id}"

    @staticmethod
    def session_lock(principal_id: str) -> str:
        """Build cache key for the lock serializing session edits."""
        return f"lock:session:{principal_id}"


class CacheTTL:
    """Cache TTL constants (in seconds)."""

    LOCK_TIMEOUT = 30
    LOCK_WAIT = 10


class RedisCache:
    """Redis cache manager with connection handling and operations."""

    def __init__(self, client: Optional[Redis] = None):
        self.client: Optional[Redis] = client
        self.pool: Optional[redis.ConnectionPool] = None

    async def initialize(self) -> None:
        """Initialize Redis connection pool and client."""
        if self.client is not None:
            return

        settings = get_settings()

        try:
            self.pool = redis.ConnectionPool.from_url(
                settings.redis_url,
                max_connections=settings.redis_max_connections,
                retry_on_timeout=True,
                socket_keepalive=True,
                health_check_interval=30
            )
            self.client = Redis(connection_pool=self.pool)

            await self.client.ping()
            logger.info("Redis cache initialized successfully")

        except RedisConnectionError as e:
            logger.error("Failed to connect to Redis: %s", e)
            raise

    async def close(self) -> None:
        """Close Redis connections."""
        if self.client:
            await self.client.aclose()
        if self.pool:
            await self.pool.disconnect()
        self.client = None
        self.pool = None
        logger.info("Redis cache connections closed")

    def _require_client(self) -> Redis:
        if self.client is None:
            raise CacheServiceError("Redis client not initialized")
        return self.client

    async def get(self, key: str) -> Optional[Any]:
        """
        Get a JSON value from cache.

        Returns:
            Cached value or None if not found

        Raises:
            CacheServiceError: If Redis cannot be reached or the value is corrupt
        """
        client = self._require_client()
        try:
            value = await client.get(key)
        except RedisError as e:
            raise CacheServiceError(f"Failed to get key {key}: {e}") from e

        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError as e:
            raise CacheServiceError(f"Corrupt value stored under {key}") from e

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a JSON-serializable value, optionally with a TTL in seconds."""
        client = self._require_client()
        serialized_value = json.dumps(value, default=str)
        try:
            if ttl:
                await client.setex(key, ttl, serialized_value)
            else:
                await client.set(key, serialized_value)
        except RedisError as e:
            raise CacheServiceError(f"Failed to set key {key}: {e}") from e

    async def delete(self, key: str) -> None:
        """Delete key from cache."""
        client = self._require_client()
        try:
            await client.delete(key)
        except RedisError as e:
            raise CacheServiceError(f"Failed to delete key {key}: {e}") from e


class DistributedLock:
    """Distributed lock implementation using Redis."""

    RELEASE_SCRIPT = """
    if redis.call("GET", KEYS[1]) == ARGV[1] then
        return redis.call("DEL", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, cache: RedisCache, key: str, timeout: int = CacheTTL.LOCK_TIMEOUT):
        """
        Initialize distributed lock.

        Args:
            cache: Redis cache instance
            key: Lock key
            timeout: Lock expiry in seconds
        """
        self.cache = cache
        self.key = key
        self.timeout = timeout
        self.identifier = uuid4().hex

    async def acquire(self, blocking: bool = True, wait: Optional[float] = None) -> bool:
        """
        Acquire the distributed lock.

        Args:
            blocking: Whether to block until lock is acquired
            wait: Maximum time to wait for lock (seconds)

        Returns:
            True if lock acquired, False otherwise
        """
        client = self.cache._require_client()

        end_time = None
        if wait:
            end_time = datetime.now(timezone.utc) + timedelta(seconds=wait)

        while True:
            try:
                acquired = await client.set(self.key, self.identifier, nx=True, ex=self.timeout)
            except RedisError as e:
                raise CacheServiceError(f"Failed to acquire lock {self.key}: {e}") from e

            if acquired:
                return True

            if not blocking:
                return False

            if end_time and datetime.now(timezone.utc) >= end_time:
                return False

            await asyncio.sleep(0.05)

    async def release(self) -> bool:
        """Release the lock if this instance still owns it."""
        client = self.cache._require_client()
        try:
            result = await client.eval(self.RELEASE_SCRIPT, 1, self.key, self.identifier)
            return bool(result)
        except RedisError as e:
            logger.warning(f"Failed to release lock {self.key}: {e}")
            return False

    async def __aenter__(self):
        acquired = await self.acquire(wait=CacheTTL.LOCK_WAIT)
        if not acquired:
            raise CacheServiceError(f"Failed to acquire lock: {self.key}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()


# Global cache instance
cache = RedisCache()


async def init_cache() -> None:
    """Initialize the global cache instance."""
    await cache.initialize()


async def close_cache() -> None:
    """Close the global cache instance."""
    await cache.close()


def get_cache() -> RedisCache:
    """Get the global cache instance."""
    return cache


@asynccontextmanager
async def distributed_lock(key: str, timeout: int = CacheTTL.LOCK_TIMEOUT, redis_cache: Optional[RedisCache] = None):
    """
    Context manager for distributed locks.

    Usage:
        async with distributed_lock("my_lock_key"):
            # Critical section
            pass
    """
    lock = DistributedLock(redis_cache or cache, key, timeout)
    async with lock:
        yield lock
