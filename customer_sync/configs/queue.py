"""
Import queue configuration settings.

Polling cadence, retention window and batch sizing for the background
import worker, plus limits for the live progress feed.

Dependencies: pydantic, pydantic_settings
System role: Worker and admission tuning
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from customer_sync.configs.base import BaseSettings


class QueueSettings(BaseSettings):
    """Dispatcher loop configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QUEUE_",
        case_sensitive=False,
        extra="ignore",
    )

    worker_enabled: bool = Field(
        default=True,
        description="Start the import dispatcher inside the API process",
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between attempts to claim a queued job",
    )
    retention_days: int = Field(
        default=7,
        ge=1,
        description="Finished jobs older than this are deleted",
    )
    cleanup_interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Seconds between retention sweeps",
    )
    worker_id: str | None = Field(
        default=None,
        description="Identifier stamped on claimed jobs (defaults to host:pid)",
    )


class ImportSettings(BaseSettings):
    """Per-job processing configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMPORT_",
        case_sensitive=False,
        extra="ignore",
    )

    chunk_size: int = Field(default=10, ge=1, description="Records processed concurrently")
    chunk_pause_seconds: float = Field(
        default=0.1,
        ge=0,
        description="Pause between chunks to smooth database load",
    )
    min_password_length: int = Field(
        default=6,
        ge=1,
        description="Minimum length of the default password assigned to new customers",
    )
    bcrypt_rounds: int = Field(default=10, ge=4, le=31, description="bcrypt cost factor")
    log_every_percent: int = Field(
        default=10,
        ge=1,
        description="Append a job log line every N percentage points while processing",
    )
    log_every_records: int = Field(
        default=100,
        ge=1,
        description="Append a job log line every N processed records",
    )


class FeedSettings(BaseSettings):
    """Live progress feed configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FEED_",
        case_sensitive=False,
        extra="ignore",
    )

    poll_interval_seconds: float = Field(default=1.0, gt=0)
    max_seconds: float = Field(default=30.0, gt=0)
