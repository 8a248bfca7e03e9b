"""Client configuration via pydantic-settings.

Reads from .env file or environment variables. The operating mode and the
two backend URLs are the only settings the orchestration layer strictly
needs; everything else has a sensible default.

Usage:
    from dataspace_client.config import get_settings
    settings = get_settings()
    print(settings.api_mode, settings.edc_api_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MOCK_API_URL = "http://localhost:3001"
DEFAULT_EDC_API_URL = "http://localhost:3002"


class Settings(BaseSettings):
    """Central configuration for the dataspace flow client."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_log_level: str = "INFO"

    # --- Operating mode ---
    # Plain string on purpose: unrecognized values are resolved to the
    # mock mode by dataspace_client.mode, not rejected here.
    api_mode: str = "mock"
    mock_api_url: str = DEFAULT_MOCK_API_URL
    edc_api_url: str = DEFAULT_EDC_API_URL

    # --- Transport ---
    http_timeout_seconds: float = 10.0
    api_path_prefix: str = "/api"

    # --- Driver defaults ---
    poll_interval_seconds: float = 2.0
    max_poll_attempts: int = 30
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    data_fetch_retry_attempts: int = 3
    data_fetch_retry_delay_seconds: float = 1.0

    # --- Metrics ---
    metrics_buffer_size: int = 500

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the client settings."""
    return Settings()
