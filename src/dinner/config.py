"""
Dinner, Decided - Configuration and settings.

All settings come from the environment (or a local .env file).
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    The OpenAI key is optional: without it the app runs against the
    offline demo generator. Supabase fields are only required when
    STORE_BACKEND=supabase.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str | None = None

    # Application
    dinner_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Prompt logging
    # DINNER_LOG_PROMPTS=1 - log to local files (dev only)
    dinner_log_prompts: bool = False

    # Storage
    store_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    seed_demo_data: bool = True

    # Generation
    generation_timeout_seconds: float = 90.0  # LLM calls run for tens of seconds
    default_meal_count: int = 5

    # Web
    cors_origins: list[str] = [
        "http://localhost:5173",  # Vite dev server
        "http://127.0.0.1:5173",
    ]

    @property
    def is_development(self) -> bool:
        return self.dinner_env == "development"

    @property
    def is_production(self) -> bool:
        return self.dinner_env == "production"

    @property
    def has_openai(self) -> bool:
        return bool(self.openai_api_key)


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


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for the web app and the CLI."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
