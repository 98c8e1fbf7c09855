"""
Pageblitz - Configuration and settings.

Settings are loaded from the environment (and .env) via pydantic-settings.
Credentials are optional so the onboarding engine can run headless in tests.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    External services (OpenAI, Supabase, Google Places) are only contacted
    when their credentials are present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini"
    openai_temperature: float = 0.7
    openai_timeout: float = 30.0

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_media_bucket: str = "onboarding-media"

    # Google Places (directory lookup)
    google_places_api_key: str = ""

    # Application
    pageblitz_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Prompt logging
    # PAGEBLITZ_LOG_PROMPTS=1 - log to local files (dev only)
    pageblitz_log_prompts: bool = False

    # Onboarding reservation countdown
    reservation_hours: int = 24
    reservation_store_path: str = ".pageblitz/reservations.json"

    @property
    def is_development(self) -> bool:
        return self.pageblitz_env == "development"

    @property
    def is_production(self) -> bool:
        return self.pageblitz_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
