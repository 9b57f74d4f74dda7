"""
Cache Interface

Explicit cache service injected into callers (never module-global state):

    cache = MemoryCache()
    await cache.set("key", {"a": 1}, ttl_seconds=3600)
    value = await cache.get("key")   # None on miss/expiry
"""

import hashlib
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def build_cache_key(endpoint: str, **params: Any) -> str:
    """
    Deterministic cache key from an endpoint name and request parameters.

    Parameters are sorted so argument order never changes the key.
    """
    key_parts = [endpoint]
    for name in sorted(params):
        value = params[name]
        if isinstance(value, (dict, list)):
            value = json.dumps(value, sort_keys=True)
        key_parts.append(f"{name}={'' if value is None else value}")

    key_str = "|".join(key_parts)
    return hashlib.sha256(key_str.encode()).hexdigest()


@dataclass
class CacheStats:
    """Cache operation statistics."""
    hits: int = 0
    misses: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class CacheBackend(ABC):
    """Async key/value cache with per-entry TTL."""

    def __init__(self):
        self.stats = CacheStats()

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss/expiry."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a JSON-serializable value for ttl_seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key if present."""

    async def close(self) -> None:
        return None


class MemoryCache(CacheBackend):
    """In-process cache. Used in development and as the test double."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        super().__init__()
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.stats.misses += 1
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.stats.misses += 1
            return None

        self.stats.hits += 1
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        self._entries[key] = (self._clock() + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
