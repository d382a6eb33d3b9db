"""
Runtime configuration helpers for the social store.

Loads storage, capacity and sync settings from the environment and the
``.env`` file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    app_name: str = Field(default="Social Store", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Storage
    storage_backend: Literal["memory", "sql"] = Field(default="memory", alias="STORAGE_BACKEND")
    database_url: str = Field(default="sqlite+pysqlite:///./socialstore.db", alias="DATABASE_URL")
    simulated_latency_ms: int = Field(default=0, ge=0, alias="SIMULATED_LATENCY_MS")
    seed_defaults: bool = Field(default=True, alias="SEED_DEFAULTS")

    # Capacity housekeeping
    post_capacity: int = Field(default=50, ge=1, alias="POST_CAPACITY")
    message_high_water: int = Field(default=500, ge=1, alias="MESSAGE_HIGH_WATER")
    message_eviction_batch: int = Field(default=100, ge=1, alias="MESSAGE_EVICTION_BATCH")

    # Synchronization
    sync_strategy: Literal["auto", "poll", "push"] = Field(default="auto", alias="SYNC_STRATEGY")
    feed_poll_interval: float = Field(default=2.0, gt=0, alias="FEED_POLL_INTERVAL")
    conversation_poll_interval: float = Field(default=1.0, gt=0, alias="CONVERSATION_POLL_INTERVAL")
    friend_state_poll_interval: float = Field(default=2.0, gt=0, alias="FRIEND_STATE_POLL_INTERVAL")

    # Credential tokens
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(default=1440, alias="JWT_EXPIRES_MINUTES")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
