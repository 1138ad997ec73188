"""Application configuration using Pydantic Settings."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///data/tvorai.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: float = 10.0
    DB_STATEMENT_TIMEOUT: float = 15.0
    AUTO_CREATE_SCHEMA: bool = True

    # Generation provider: "novita" for the real API, "mock" for demos
    GENERATION_PROVIDER: Literal["novita", "mock"] = "novita"
    NOVITA_API_KEY: str = ""
    NOVITA_BASE_URL: str = "https://api.novita.ai"
    PROVIDER_TIMEOUT_SECONDS: float = 60.0

    # Keepalive ping against the store; 0 disables it
    KEEPALIVE_INTERVAL_SECONDS: float = 240.0

    # API
    CORS_ORIGINS: list[str] = ["*"]
    USAGE_HISTORY_LIMIT: int = 10
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Install a basic root handler if none is configured yet."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
