"""
Redis Service for response caching
"""
import json
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

from dentalhub.core.config import settings
from dentalhub.core.logging import get_logger

logger = get_logger(__name__)

# Global Redis pool
_redis_pool: Optional[redis.ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get Redis client with connection pooling"""
    global _redis_pool, _redis_client

    if _redis_client is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            max_connections=100,
            decode_responses=True
        )
        _redis_client = redis.Redis(connection_pool=_redis_pool)

    return _redis_client


async def close_redis():
    """Close Redis connection"""
    global _redis_pool, _redis_client

    if _redis_client:
        await _redis_client.close()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None


class RedisClient:
    """Thin wrapper used by readiness checks"""

    async def health_check(self) -> bool:
        try:
            client = await get_redis()
            return bool(await client.ping())
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False


class ResponseCache:
    """
    Redis-based cache for external API responses

    Cache errors never fail the caller: reads miss and writes are dropped.
    """

    def __init__(self, prefix: str = "cache", default_ttl: Optional[int] = None):
        self.prefix = prefix
        self.default_ttl = default_ttl or settings.cache_default_ttl

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        if not settings.cache_enabled:
            return None
        try:
            client = await get_redis()
            data = await client.get(self._key(key))
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

        if data is None:
            return None
        try:
            return json.loads(data)
        except (TypeError, json.JSONDecodeError):
            logger.warning(f"Discarding undecodable cache entry: {key}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if not settings.cache_enabled:
            return
        try:
            client = await get_redis()
            await client.setex(self._key(key), ttl or self.default_ttl, json.dumps(value, default=str))
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        if not settings.cache_enabled:
            return
        try:
            client = await get_redis()
            await client.delete(self._key(key))
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")

    async def get_or_set(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """Return the cached value or fetch, store and return a fresh one"""
        cached = await self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        value = await fetch()
        if value is not None:
            await self.set(key, value, ttl)
        return value
