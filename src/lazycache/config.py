"""Cache configuration management."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Cache settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="LAZYCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Expiration
    DEFAULT_TIMEOUT_SECONDS: int = Field(
        default=30 * 60,
        ge=0,
        description="Timeout applied by TimeoutExpirationPolicy when none is given",
    )

    # Derived slot keys used by CompareValueExpirationPolicy
    COMPARE_VALUE_SUFFIX: str = Field(
        default="_compareValue",
        min_length=1,
        description="Suffix of the cache slot holding a compared value baseline",
    )
    POLICY_KEY_SUFFIX: str = Field(
        default="CompareValueExpirationPolicy",
        min_length=1,
        description="Suffix of the cache slot holding a shared compare-value policy",
    )

    # Concurrency
    SERIALIZE_PRODUCERS: bool = Field(
        default=True,
        description="Run at most one get_or_compute producer per key at a time. "
        "When False, concurrent misses race and the last write wins.",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
