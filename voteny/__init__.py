"""VoteNY - page voting widget and vote aggregates for wikis."""

__version__ = "1.0.0"

from .aggregates import VoteAggregates
from .api import app, create_app
from .hooks import VoteHooks

__all__ = [
    "VoteAggregates",
    "VoteHooks",
    "app",
    "create_app",
]
