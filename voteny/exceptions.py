"""Domain-specific exceptions for VoteNY."""


class VoteError(Exception):
    """Base exception for all VoteNY errors."""


class StorageError(VoteError):
    """Error related to vote storage operations."""


class ValidationError(VoteError):
    """Error related to input validation (not Pydantic)."""


class ConfigurationError(VoteError):
    """Error related to configuration issues."""


class UnsupportedDatabaseError(ConfigurationError):
    """The database engine has no schema definition for the vote table."""

    def __init__(self, engine: str) -> None:
        self.engine = engine
        super().__init__(f"VoteNY does not support {engine}.")
