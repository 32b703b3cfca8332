"""Configuration management using pydantic-settings."""
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional
import structlog

from vehicle_ingestion.models.vehicle import Currency, Incoterm


class MatchingSettings(BaseSettings):
    """Fuzzy matching configuration loaded from environment variables.

    All settings prefixed with MATCH_ (e.g., MATCH_FUZZY_ACCEPT_THRESHOLD=0.65)
    """

    # Matching Thresholds
    auto_accept_threshold: float = Field(
        default=0.8,
        ge=0,
        le=1,
        description="Header similarity >= this auto-maps a column (default: 0.8)"
    )
    fuzzy_accept_threshold: float = Field(
        default=0.6,
        ge=0,
        le=1,
        description="Taxonomy similarity >= this accepts a fuzzy match (default: 0.6)"
    )

    # Scoring
    edit_distance_weight: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Weight of edit similarity in the blended score (rest is token overlap)"
    )
    max_suggestions: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Ranked candidate names kept on each match result for review"
    )

    model_config = SettingsConfigDict(
        env_prefix="MATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ImportSettings(BaseSettings):
    """Batch import configuration loaded from environment variables.

    All settings prefixed with IMPORT_ (e.g., IMPORT_CHUNK_SIZE=100)
    """

    # Processing Configuration
    chunk_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Rows processed and committed per chunk"
    )
    max_concurrency: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Rows of one chunk processed concurrently (1 = sequential)"
    )

    # File Limits
    max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Maximum upload size accepted by the spreadsheet parsers (MB)"
    )

    # Validation
    min_vehicle_year: int = Field(
        default=1970,
        ge=1886,
        description="Oldest model year accepted by the row validator"
    )
    default_currency: Currency = Field(
        default=Currency.USD,
        description="Currency applied to priced rows without a currency column"
    )
    default_incoterm: Incoterm = Field(
        default=Incoterm.FOB,
        description="Incoterm applied to priced rows without an incoterm column"
    )

    # Caching / Progress
    taxonomy_cache_ttl_seconds: int = Field(
        default=3600,
        ge=0,
        description="Seconds a loaded taxonomy index is reused across batches"
    )
    progress_ttl_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        ge=60,
        description="Expiry of the Redis progress hash of a batch"
    )

    @field_validator("default_currency", "default_incoterm", mode="before")
    @classmethod
    def uppercase_code(cls, v):
        """Accept lowercase codes from the environment ("aed" → AED)."""
        return v.strip().upper() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    log_level: str = "INFO"
    environment: str = "development"

    # Redis Configuration (progress forwarding)
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_url: Optional[str] = None

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
            auth = f":{self.redis_password}@" if self.redis_password else ""
            self.redis_url = f"redis://{auth}{self.redis_host}:{self.redis_port}/0"


# Global settings instances
settings = Settings()
matching_settings = MatchingSettings()
import_settings = ImportSettings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper(), logging.INFO))
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


# Initialize logging on module import (after settings are loaded)
configure_logging(settings.log_level)
