"""
Upstream (SGP) API configuration settings.

Endpoint template, paging and retry policy for the customer fetcher,
and the bounds applied by the inline incremental sync.

Dependencies: pydantic, pydantic_settings
System role: External data source configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from customer_sync.configs.base import BaseSettings


class UpstreamSettings(BaseSettings):
    """Paginated customer endpoint configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="UPSTREAM_",
        case_sensitive=False,
        extra="ignore",
    )

    base_url_template: str = Field(
        default="https://{subdomain}.sgp.net.br/api/ura/clientes/",
        description="Customer listing endpoint, formatted with the tenant subdomain",
    )
    page_size: int = Field(default=50, ge=1, le=100, description="Records per page")
    timeout_seconds: float = Field(default=120.0, gt=0, description="Per-request timeout")
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per page before giving up on transient errors",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        ge=0,
        description="Exponential backoff multiplier (2 gives waits of 2s, 4s, 8s)",
    )
    page_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Pause between successful page requests",
    )


class SyncSettings(BaseSettings):
    """Inline incremental sync bounds."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SYNC_",
        case_sensitive=False,
        extra="ignore",
    )

    changed_within_hours: int = Field(default=24, ge=1)
    max_records: int = Field(default=500, ge=1)
    max_requests: int = Field(default=10, ge=1)
    page_size: int = Field(default=100, ge=1, le=100)
    timeout_seconds: float = Field(default=30.0, gt=0)
    active_only: bool = Field(default=True)
    new_customer_password: str = Field(
        default="123456",
        min_length=6,
        description="Initial password of customers created by the sync",
    )
