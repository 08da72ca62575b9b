"""Request and response models using Pydantic."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError


class VoteRequest(BaseModel):
    """Vote cast by the current user."""

    value: int = Field(..., description="Vote value, checked against the configured range")


class LoginRequest(BaseModel):
    """Demo login payload."""

    user_id: int = Field(..., ge=1)
    username: str = Field(..., min_length=1, max_length=255)

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise PydanticCustomError("empty_username", "Username cannot be empty", {"input": value})
        return value.strip()


class VoteResponse(BaseModel):
    """A stored vote."""

    page_id: int
    user_id: int
    username: str
    value: int
    timestamp: datetime


class PageVotesResponse(BaseModel):
    """Aggregates for a single page."""

    page_id: int
    count: int
    score: float


class TotalVotesResponse(BaseModel):
    """Site-wide vote count."""

    count: int


class MagicWordResponse(BaseModel):
    """Value a magic word expands to."""

    magic_word: str
    page_id: int | None = None
    value: str
