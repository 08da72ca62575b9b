"""Storage module with factories for creating repository and cache instances."""

from loguru import logger

from ..config import settings
from .cache import DEFAULT_CACHE_SIZE, InMemoryCache, NoOpCache, RedisCache, cache_key
from .protocols import Cache, VoteRepository
from .schema import SchemaUpdater, engine_type, schema_file
from .sql import SQLVoteRepository


def create_repository(database_url: str | None = None) -> VoteRepository:
    """Create repository instance based on database URL.

    Args:
        database_url: Database URL. Uses settings if not provided.

    Returns:
        Repository instance.
    """
    url = database_url or settings.database_url
    logger.info(f"Creating vote repository ({engine_type(url)})")
    return SQLVoteRepository(url)


def create_cache(redis_url: str | None = None, enabled: bool = True) -> Cache:
    """Create cache instance based on configuration.

    Args:
        redis_url: Redis URL for caching. Uses settings if not provided.
        enabled: Return a cache that never stores anything when False.

    Returns:
        Cache instance.
    """
    if not enabled:
        logger.info("Caching disabled")
        return NoOpCache()

    url = redis_url or settings.redis_url
    if url:
        logger.info("Creating Redis cache")
        return RedisCache(url)

    logger.info("No Redis configured, using in-memory cache")
    return InMemoryCache(max_size=settings.cache_max_size)


__all__ = [
    "DEFAULT_CACHE_SIZE",
    "Cache",
    "InMemoryCache",
    "NoOpCache",
    "RedisCache",
    "SQLVoteRepository",
    "SchemaUpdater",
    "VoteRepository",
    "cache_key",
    "create_cache",
    "create_repository",
    "engine_type",
    "schema_file",
]
