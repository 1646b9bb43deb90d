"""
Redis cache client configuration.
"""

import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from civicconnect.core.config import settings
from civicconnect.core.metrics import record_cache_operation

logger = logging.getLogger(__name__)

redis_client: Optional[Redis] = None


async def get_redis() -> Redis:
    """Get Redis client instance."""
    global redis_client
    if redis_client is None:
        redis_client = from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis():
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


class CacheService:
    """
    Redis caching service with JSON serialization.

    Cache failures never propagate: a Redis error is logged and treated as a
    miss (reads) or a no-op (writes), so callers fall back to the store.
    """

    def __init__(self, redis: Redis, namespace: str = "civicconnect"):
        self.redis = redis
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache."""
        try:
            value = await self.redis.get(self._key(key))
        except RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            record_cache_operation("error")
            return None
        if value is None:
            record_cache_operation("miss")
            return None
        try:
            decoded = json.loads(value)
        except ValueError as exc:
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            record_cache_operation("error")
            return None
        record_cache_operation("hit")
        return decoded

    async def set(self, key: str, value: Any, ttl: int = settings.ROLE_CACHE_TTL) -> bool:
        """Set value in cache with TTL."""
        serialized = json.dumps(value, default=str)
        try:
            success = await self.redis.setex(self._key(key), ttl, serialized)
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
            record_cache_operation("error")
            return False
        if success:
            record_cache_operation("set")
        return bool(success)

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        try:
            deleted = bool(await self.redis.delete(self._key(key)))
        except RedisError as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)
            record_cache_operation("error")
            return False
        if deleted:
            record_cache_operation("delete")
        return deleted
