"""Cached vote aggregates.

Every lookup is cache-aside: read the object cache, and on a miss run the
aggregate query and store the result with a fixed TTL. New votes do not
invalidate anything, so a value can be up to one TTL old.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from .storage import Cache, VoteRepository, cache_key

# Seconds in a day
TOTAL_VOTES_TTL = 86400
PAGE_VOTES_TTL = 3600
PAGE_SCORE_TTL = 3600


class VoteAggregates:
    """Vote count and average score lookups backed by the object cache."""

    def __init__(self, repository: VoteRepository, cache: Cache, key_prefix: str = "voteny") -> None:
        self.repository = repository
        self.cache = cache
        self.key_prefix = key_prefix

    def total_votes_key(self) -> str:
        return cache_key("vote", "magic-word", prefix=self.key_prefix)

    def page_votes_key(self, page_id: int) -> str:
        return cache_key("vote", "magic-word-page", page_id, prefix=self.key_prefix)

    def page_score_key(self, page_id: int) -> str:
        return cache_key("vote", "magic-word-score-page", page_id, prefix=self.key_prefix)

    async def number_of_votes(self) -> int:
        """Number of votes cast on the whole site."""
        return int(
            await self._lookup(self.total_votes_key(), TOTAL_VOTES_TTL, self.repository.count_votes)
        )

    async def number_of_votes_page(self, page_id: int) -> int:
        """Number of votes cast on one page."""
        return int(
            await self._lookup(
                self.page_votes_key(page_id),
                PAGE_VOTES_TTL,
                lambda: self.repository.count_votes(page_id),
            )
        )

    async def score_page(self, page_id: int) -> float:
        """Average vote value of one page, 0.0 when nobody voted."""
        return float(
            await self._lookup(
                self.page_score_key(page_id),
                PAGE_SCORE_TTL,
                lambda: self.repository.average_score(page_id),
            )
        )

    async def _lookup(self, key: str, ttl: int, compute: Callable[[], Awaitable[Any]]) -> Any:
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Got {key} from cache")
            return cached

        value = await compute()
        logger.debug(f"Got {key} from DB: {value!r}")
        await self.cache.set(key, value, ttl)
        return value
