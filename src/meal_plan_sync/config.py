"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    meal_plans_api_url: str = "http://localhost:8000"
    owner_id: str | None = None
    request_timeout_seconds: float = 10
    sync_debounce_seconds: float = 0.15
    persist_retry_attempts: int = 2
    persist_retry_delay_seconds: float = 0.5
    persist_retry_backoff: float = 2.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_owner_id(raw: str | None) -> str | None:
    """Normalize an owner identity from a header or env value."""
    if raw is None:
        return None
    cleaned = raw.strip()
    return cleaned or None
