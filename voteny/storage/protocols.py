"""Storage protocol definitions using typing.Protocol."""

from typing import Any, Protocol

from ..types import VoteRecord


class VoteRepository(Protocol):
    """Repository protocol for vote persistence."""

    async def count_votes(self, page_id: int | None = None) -> int:
        """Count all votes, or the votes of one page."""
        ...

    async def average_score(self, page_id: int) -> float:
        """Average vote value of a page."""
        ...

    async def get_vote(self, page_id: int, user_id: int) -> VoteRecord | None:
        """Get a user's vote on a page."""
        ...

    async def save_vote(
        self, page_id: int, user_id: int, username: str, value: int, ip: str | None = None
    ) -> VoteRecord:
        """Cast or replace a user's vote on a page."""
        ...

    async def delete_vote(self, page_id: int, user_id: int) -> bool:
        """Withdraw a user's vote on a page."""
        ...

    async def health_check(self) -> bool:
        """Check if repository is healthy."""
        ...

    async def startup(self) -> None:
        """Initialize repository on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup repository on shutdown."""
        ...


class Cache(Protocol):
    """Cache protocol for aggregate values."""

    async def get(self, key: str) -> Any | None:
        """Get cached value."""
        ...

    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Set cached value with TTL."""
        ...

    async def startup(self) -> None:
        """Initialize cache on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup cache on shutdown."""
        ...
