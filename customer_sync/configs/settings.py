"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from customer_sync.configs.base import BaseSettings
from customer_sync.configs.database import DatabaseSettings
from customer_sync.configs.queue import FeedSettings, ImportSettings, QueueSettings
from customer_sync.configs.upstream import SyncSettings, UpstreamSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    # Aggregated settings
    database: DatabaseSettings = DatabaseSettings()
    queue: QueueSettings = QueueSettings()
    imports: ImportSettings = ImportSettings()
    feed: FeedSettings = FeedSettings()
    upstream: UpstreamSettings = UpstreamSettings()
    sync: SyncSettings = SyncSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from customer_sync.configs import get_settings
        settings = get_settings()
    """
    return Settings()
