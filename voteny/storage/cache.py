"""Cache implementations."""

import json
import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from ..exceptions import StorageError

DEFAULT_CACHE_SIZE = 1000


def cache_key(*parts: Any, prefix: str = "voteny") -> str:
    """Build an object-cache key.

    Keys are the prefix (the wiki id) followed by the parts, colon separated,
    so ``cache_key("vote", "magic-word-page", 12)`` gives
    ``voteny:vote:magic-word-page:12``.
    """
    return ":".join(str(part) for part in (prefix, *parts))


class InMemoryCache:
    """Process-local cache with per-entry TTL."""

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize in-memory cache.

        Args:
            max_size: Entries kept before the one closest to expiry is evicted.
            clock: Time source in seconds.
        """
        self.entries: dict[str, tuple[Any, float]] = {}
        self.max_size = max_size
        self.clock = clock

    async def startup(self) -> None:
        """No initialization needed."""
        logger.info("In-memory cache ready")

    async def shutdown(self) -> None:
        """Drop all entries."""
        self.entries.clear()

    async def get(self, key: str) -> Any | None:
        """Get cached value.

        Args:
            key: Cache key.

        Returns:
            Cached value if present and not expired, None otherwise.
        """
        entry = self.entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self.clock() >= expires_at:
            del self.entries[key]
            logger.debug(f"Cache entry expired: {key}")
            return None
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Set cached value with TTL.

        Args:
            key: Cache key.
            value: Data to cache.
            ttl: Time to live in seconds.
        """
        self.entries[key] = (value, self.clock() + ttl)

        if len(self.entries) > self.max_size:
            expiring_key = min(self.entries, key=lambda k: self.entries[k][1])
            del self.entries[expiring_key]
            logger.debug(f"Evicted {expiring_key} from cache")


class RedisCache:
    """Redis cache implementation."""

    def __init__(self, redis_url: str):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL.
        """
        self.redis_url = redis_url
        self.redis = None

    async def startup(self) -> None:
        """Initialize Redis connection."""
        import redis.asyncio as redis

        self.redis = redis.from_url(self.redis_url, decode_responses=True)
        try:
            await self.redis.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error(f"Redis connection failed: {e}")
            raise StorageError(f"Redis connection failed: {e}") from e
        logger.info("Redis cache connected")

    async def shutdown(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Any | None:
        """Get cached value.

        Args:
            key: Cache key.

        Returns:
            Cached data if found, None otherwise.
        """
        if self.redis is None:
            raise StorageError("Redis cache used before startup")

        data = await self.redis.get(key)
        return json.loads(data) if data is not None else None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Set cached value with TTL.

        Args:
            key: Cache key.
            value: Data to cache.
            ttl: Time to live in seconds.
        """
        if self.redis is None:
            raise StorageError("Redis cache used before startup")

        await self.redis.setex(key, ttl, json.dumps(value))


class NoOpCache:
    """No-op cache implementation when caching is disabled."""

    async def startup(self) -> None:
        """No initialization needed."""
        pass

    async def shutdown(self) -> None:
        """No cleanup needed."""
        pass

    async def get(self, key: str) -> Any | None:
        """Always returns None (no caching)."""
        return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Does nothing (no caching)."""
        pass
