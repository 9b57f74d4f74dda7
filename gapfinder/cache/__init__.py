"""
Caching layer

Keyword fetches are expensive against the data provider, so responses are
cached by (endpoint, host, market, language, limit). The backend is chosen
once at startup and passed to the fetcher.
"""

import logging
from typing import Optional

from .base import CacheBackend, CacheStats, MemoryCache, build_cache_key

logger = logging.getLogger(__name__)


def create_cache(settings) -> Optional[CacheBackend]:
    """Build the configured cache backend (None when caching is disabled)."""
    if not settings.CACHE_ENABLED:
        logger.info("Response cache disabled")
        return None

    if settings.REDIS_URL:
        from .redis_cache import RedisCache
        return RedisCache.from_url(settings.REDIS_URL)

    logger.info("No REDIS_URL set, using in-process memory cache")
    return MemoryCache()


__all__ = [
    "CacheBackend",
    "CacheStats",
    "MemoryCache",
    "build_cache_key",
    "create_cache",
]
