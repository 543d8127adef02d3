# Configuration — env-driven settings for OneSignal delivery and the reminder queue.
# Created: 2026-03-02

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from ``SUBNOTIFY_*`` env vars or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="SUBNOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OneSignal (Settings > Keys & IDs)
    onesignal_app_id: str | None = None
    onesignal_rest_api_key: str | None = None
    onesignal_api_url: str = "https://api.onesignal.com/notifications?c=push"
    onesignal_legacy_api_url: str = "https://onesignal.com/api/v1/notifications"
    request_timeout: float = 15.0

    # Reconciliation
    subscriber_retry_delay: float = 1.5
    due_tolerance_seconds: int = 60
    schedule_lead_seconds: int = 5
    sent_retention_days: int = 30
    reconcile_interval_seconds: int = Field(default=300, ge=1)

    # Storage / runtime
    data_dir: Path = Path.home() / ".subnotify"
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8890


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance (``get_settings.cache_clear()`` to reload)."""
    return Settings()


def get_config_dir() -> Path:
    """Get/create the data directory."""
    d = get_settings().data_dir
    d.mkdir(parents=True, exist_ok=True)
    return d
