"""Tests for environment-driven settings."""

from customer_sync.configs.database import DatabaseSettings
from customer_sync.configs.queue import ImportSettings, QueueSettings
from customer_sync.configs.upstream import UpstreamSettings


def test_database_url_from_fields():
    settings = DatabaseSettings(host="db", port=5433, user="app", password="pw", db="sync", sslmode="require")

    assert settings.async_database_url == "postgresql+asyncpg://app:pw@db:5433/sync?ssl=require"
    assert not settings.is_sqlite


def test_database_url_override():
    settings = DatabaseSettings(url_override="sqlite+aiosqlite:///./local.db")

    assert settings.async_database_url == "sqlite+aiosqlite:///./local.db"
    assert settings.is_sqlite


def test_queue_settings_read_environment(monkeypatch):
    monkeypatch.setenv("QUEUE_POLL_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("QUEUE_WORKER_ENABLED", "false")
    monkeypatch.setenv("IMPORT_CHUNK_SIZE", "25")

    assert QueueSettings().poll_interval_seconds == 2.5
    assert QueueSettings().worker_enabled is False
    assert ImportSettings().chunk_size == 25


def test_upstream_defaults():
    settings = UpstreamSettings()

    assert settings.page_size == 50
    assert settings.max_attempts == 3
    assert settings.timeout_seconds == 120.0


def test_retention_defaults_to_a_week(monkeypatch):
    monkeypatch.delenv("QUEUE_RETENTION_DAYS", raising=False)

    assert QueueSettings().retention_days == 7
