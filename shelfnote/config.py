"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    database_pool_size: int = Field(
        default=10,
        description="Maximum number of pooled connections kept open by the engine",
        gt=0,
    )
    secret_key: str = Field(
        description="Secret key used to verify bearer tokens", min_length=1
    )
    jwt_algorithm: str = Field(default="HS256", description="Bearer token algorithm")
    cors_origins: list[str] = Field(
        default_factory=list, description="Origins allowed to call the API"
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    publish_timeout_seconds: float = Field(
        default=5.0,
        description="Upper bound for a single publish call",
        gt=0,
    )
    reader_timeout_seconds: float = Field(
        default=5.0,
        description="Upper bound for feed and read-state queries",
        gt=0,
    )

    fan_out_max_concurrency: int = Field(
        default=16, description="Concurrent publishes per fan-out", gt=0
    )
    fan_out_max_attempts: int = Field(
        default=3, description="Attempts for a transient publish failure", gt=0
    )
    fan_out_backoff_base_ms: float = Field(
        default=50.0, description="Initial retry delay in milliseconds", gt=0
    )
    fan_out_backoff_factor: float = Field(
        default=2.0, description="Multiplier applied to the delay per attempt", ge=1
    )
    fan_out_backoff_jitter: float = Field(
        default=0.2, description="Relative jitter applied to retry delays", ge=0, lt=1
    )
    fan_out_timeout_seconds: float = Field(
        default=30.0, description="Total time budget for one fan-out", gt=0
    )
    trigger_dedup_ttl_seconds: float = Field(
        default=600.0,
        description="Lifetime of trigger keys remembered for deduplication",
        gt=0,
    )

    feed_default_limit: int = Field(default=50, description="Default page size", gt=0)
    feed_max_limit: int = Field(default=100, description="Largest page size", gt=0)

    @model_validator(mode="after")
    def _validate_feed_limits(self) -> "Settings":
        if self.feed_default_limit > self.feed_max_limit:
            raise ValueError("FEED_DEFAULT_LIMIT cannot exceed FEED_MAX_LIMIT")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
