"""
Redis Cache Implementation

Values are JSON-serialized. Redis failures degrade to cache misses: a cache
outage must never fail a comparison.
"""

import json
import logging
from typing import Any, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .base import CacheBackend

logger = logging.getLogger(__name__)


class RedisCache(CacheBackend):
    """Redis-backed cache with namespace isolation."""

    def __init__(
        self,
        redis: Redis,
        namespace: str = "gapfinder",
    ):
        super().__init__()
        self._redis = redis
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "gapfinder", **kwargs) -> "RedisCache":
        """Create a cache from a redis:// URL."""
        redis = Redis.from_url(url, decode_responses=False, **kwargs)
        logger.info(f"Redis cache configured: {url}")
        return cls(redis, namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._redis.get(self._key(key))
        except RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Redis GET failed, treating as miss: {e}")
            return None

        if raw is None:
            self.stats.misses += 1
            return None

        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            self.stats.errors += 1
            logger.warning(f"Corrupt cache entry {key}, dropping: {e}")
            await self.delete(key)
            return None

        self.stats.hits += 1
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        try:
            await self._redis.set(self._key(key), json.dumps(value), ex=int(ttl_seconds))
        except RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Redis SET failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except RedisError as e:
            self.stats.errors += 1
            logger.warning(f"Redis DELETE failed for {key}: {e}")

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis cache closed")
