"""Type definitions for VoteNY."""

from typing_extensions import TypedDict


class VoteRecord(TypedDict):
    """Database record for a single vote."""

    page_id: int
    user_id: int
    username: str
    value: int
    timestamp: str


class HealthStatus(TypedDict):
    """Health status of system components."""

    storage: bool
    cache: bool
