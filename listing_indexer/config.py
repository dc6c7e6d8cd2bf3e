"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from enum import Enum
import structlog


class MalformedPricePolicy(str, Enum):
    """What the indexer does with a quote whose price payload cannot be decoded."""
    ABORT = "abort"
    SKIP = "skip"


class IndexerSettings(BaseSettings):
    """Listing price indexer configuration.

    All settings prefixed with LISTING_ (e.g., LISTING_BATCH_SIZE=1000)
    """

    batch_size: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Canonical products per batch during a full reindex"
    )
    on_malformed_price: MalformedPricePolicy = Field(
        default=MalformedPricePolicy.ABORT,
        description="abort: fail the whole update; skip: drop the quote and report it"
    )
    clear_without_prices: bool = Field(
        default=False,
        description="Write an empty listing price list for products left without quotes"
    )

    model_config = SettingsConfigDict(
        env_prefix="LISTING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str

    # Redis Configuration
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str
    redis_url: Optional[str] = None

    # Queue Configuration
    queue_name: str = "listing-price-queue"
    dlq_name: str = "listing-price-dlq"

    # Worker Configuration
    max_workers: int = 5
    job_timeout: int = 300
    log_level: str = "INFO"
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings and build derived values."""
        super().__init__(**kwargs)
        # Build Redis URL if not provided
        if not self.redis_url:
            self.redis_url = f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/0"


# Global settings instances
settings = Settings()
indexer_settings = IndexerSettings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


configure_logging(settings.log_level)
