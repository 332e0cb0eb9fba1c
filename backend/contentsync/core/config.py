"""Configuration settings for the content sync pipeline.

Values are read from the environment (and an optional ``.env`` file) once at
import time and exposed through the module-level ``settings`` singleton.
"""

import logging
from typing import List, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_config_logger = logging.getLogger("contentsync.config")

VALID_CONTENTSTACK_REGIONS = ("us", "eu", "azure-na", "azure-eu", "gcp-na")


class Settings(BaseSettings):
    """Settings for the content sync pipeline.

    Attributes:
        CONTENTSTACK_API_KEY: Stack API key for the Content Delivery API.
        CONTENTSTACK_DELIVERY_TOKEN: Delivery token scoped to the environment.
        CONTENTSTACK_ENVIRONMENT: Publishing environment to read from.
        CONTENTSTACK_REGION: Stack region, selects the CDN host.
        CONTENTSTACK_HOST: Optional CDN host override.
        CONTENTSTACK_TIMEOUT: Per-request timeout in seconds.
        CONTENTSTACK_RETRY_LIMIT: Retries per source call after the first attempt.
        CONTENTSTACK_RETRY_DELAY: Base backoff delay in seconds.
        CONTENTSTACK_LOCALES: Comma-separated locales to sync.
        CONTENT_BASE_URL: Public site URL used to render record URLs.
        OPENAI_API_KEY: API key for the embedding provider.
        OPENAI_EMBEDDING_MODEL: Embedding model name.
        EMBEDDING_DIMENSIONS: Expected vector length.
        EMBEDDING_MAX_TOKENS: Token budget per embedding text.
        EMBEDDING_BATCH_SIZE: Texts per provider call.
        EMBEDDING_BATCH_DELAY: Pause between provider calls in seconds.
        SYNC_PAGE_SIZE: Records requested per page.
        SYNC_PAGE_DELAY: Pause between page requests in seconds.
        SYNC_MAX_PAGES: Page ceiling per (category, locale) pair.
        SYNC_MAX_CONCURRENCY: Pairs fetched in parallel.
        FALLBACK_PAGE_SIZE: Page size for the first fallback strategy.
        DEFAULT_LOCALE: Locale used by the single-locale fallbacks.
        SYNC_INTERVAL_MINUTES: Expected schedule interval, used for status.
        CLEANUP_RETENTION_DAYS: Age after which stale rows are deleted.
        POSTGRES_*: Store connection parameters.
        CONTENT_TABLE: Store table holding the embedded records.
        UPSERT_BATCH_SIZE: Rows per upsert statement.
        LOG_LEVEL: Root log level for the ``contentsync`` loggers.
        LOCAL_DEVELOPMENT: Enables debug-friendly defaults.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=True)

    CONTENTSTACK_API_KEY: Optional[str] = None
    CONTENTSTACK_DELIVERY_TOKEN: Optional[str] = None
    CONTENTSTACK_ENVIRONMENT: str = "development"
    CONTENTSTACK_REGION: str = "us"
    CONTENTSTACK_HOST: Optional[str] = None
    CONTENTSTACK_TIMEOUT: float = 30.0
    CONTENTSTACK_RETRY_LIMIT: int = 3
    CONTENTSTACK_RETRY_DELAY: float = 1.0
    CONTENTSTACK_LOCALES: str = "en-us"

    CONTENT_BASE_URL: str = "https://example.com"

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSIONS: int = 1536
    EMBEDDING_MAX_TOKENS: int = 4000
    EMBEDDING_BATCH_SIZE: int = 100
    EMBEDDING_BATCH_DELAY: float = 1.0

    SYNC_PAGE_SIZE: int = 50
    SYNC_PAGE_DELAY: float = 0.2
    SYNC_MAX_PAGES: int = 100
    SYNC_MAX_CONCURRENCY: int = 1
    FALLBACK_PAGE_SIZE: int = 25
    DEFAULT_LOCALE: str = "en-us"
    SYNC_INTERVAL_MINUTES: int = 60
    CLEANUP_RETENTION_DAYS: int = 30

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "postgres"
    CONTENT_TABLE: str = "content_entries"
    UPSERT_BATCH_SIZE: int = 100

    LOG_LEVEL: str = "INFO"
    LOCAL_DEVELOPMENT: bool = False

    @field_validator("CONTENTSTACK_REGION")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Reject regions the Content Delivery API does not serve."""
        if v not in VALID_CONTENTSTACK_REGIONS:
            raise ValueError(
                f"CONTENTSTACK_REGION '{v}' is invalid. "
                f"Valid options: {', '.join(VALID_CONTENTSTACK_REGIONS)}"
            )
        return v

    @field_validator("CONTENTSTACK_RETRY_LIMIT")
    @classmethod
    def validate_retry_limit(cls, v: int) -> int:
        """Retry limit must allow at least one retry."""
        if v < 1:
            raise ValueError(
                "CONTENTSTACK_RETRY_LIMIT must be at least 1. Set to a value between 1-5."
            )
        return v

    @field_validator(
        "SYNC_PAGE_SIZE",
        "SYNC_MAX_PAGES",
        "SYNC_MAX_CONCURRENCY",
        "FALLBACK_PAGE_SIZE",
        "EMBEDDING_BATCH_SIZE",
        "EMBEDDING_DIMENSIONS",
        "UPSERT_BATCH_SIZE",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Sizes and limits must be positive."""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def warn_on_suboptimal_values(self) -> "Settings":
        """Log warnings for values that work but are likely to misbehave."""
        warnings = []
        if self.CONTENTSTACK_TIMEOUT < 5:
            warnings.append(
                "CONTENTSTACK_TIMEOUT is less than 5 seconds. "
                "This may cause timeouts for large content requests."
            )
        if self.CONTENTSTACK_TIMEOUT > 120:
            warnings.append("CONTENTSTACK_TIMEOUT is greater than 2 minutes.")
        if self.CONTENTSTACK_RETRY_LIMIT > 5:
            warnings.append(
                "CONTENTSTACK_RETRY_LIMIT is greater than 5. High retry counts may cause delays."
            )
        if self.CONTENTSTACK_RETRY_DELAY < 0.1:
            warnings.append(
                "CONTENTSTACK_RETRY_DELAY is less than 100ms. This may cause rate limiting issues."
            )
        if self.CONTENTSTACK_RETRY_DELAY > 10:
            warnings.append("CONTENTSTACK_RETRY_DELAY is greater than 10 seconds.")

        for warning in warnings:
            _config_logger.warning(warning)
        return self

    @property
    def locales(self) -> List[str]:
        """Configured locales as a list, defaulting to ``DEFAULT_LOCALE``."""
        locales = [loc.strip() for loc in self.CONTENTSTACK_LOCALES.split(",") if loc.strip()]
        return locales or [self.DEFAULT_LOCALE]

    @property
    def contentstack_host(self) -> str:
        """CDN host for the configured region (or the explicit override)."""
        if self.CONTENTSTACK_HOST:
            return self.CONTENTSTACK_HOST
        if self.CONTENTSTACK_REGION == "us":
            return "cdn.contentstack.io"
        return f"{self.CONTENTSTACK_REGION}-cdn.contentstack.com"

    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:
        """Async SQLAlchemy URI for the store."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
