"""Configuration using pydantic-settings."""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with validation and constants."""

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 8000
    log_level: str = "INFO"
    log_file: str | None = None

    database_url: str = "sqlite+aiosqlite:///./data/voteny.db"
    redis_url: str | None = None

    # Object cache settings
    cache_key_prefix: str = "voteny"
    cache_max_size: int = 1000

    rate_limit: str = "30/minute"

    # JWT settings
    secret_key: str = "your-secret-key-change-in-production"  # noqa: S105
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 30

    # Vote values accepted from users
    vote_min: int = 1
    vote_max: int = 5

    @model_validator(mode="after")
    def validate_vote_range(self) -> "Settings":
        """Validate that the vote range is usable."""
        if self.vote_min < 1:
            raise ValueError("VOTENY_VOTE_MIN must be at least 1.")
        if self.vote_min > self.vote_max:
            raise ValueError(
                f"VOTENY_VOTE_MIN ({self.vote_min}) cannot exceed VOTENY_VOTE_MAX ({self.vote_max})."
            )
        return self

    class Config:
        """Pydantic config."""

        env_prefix = "VOTENY_"
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)."""
    return settings
