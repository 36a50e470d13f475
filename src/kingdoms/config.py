"""Runtime configuration for the kingdom engine."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from the environment or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="KINGDOMS_"
    )

    database_url: str = Field(
        default="sqlite:///kingdoms.db", description="SQLAlchemy URL of the relational store"
    )
    database_echo: bool = Field(default=False, description="Echo emitted SQL to the log")
    database_pool_size: int = Field(default=5, ge=1)
    database_max_overflow: int = Field(default=10, ge=0)
    database_pool_recycle: int = Field(default=1800, description="Seconds before recycling")
    database_pool_timeout: int = Field(default=30, ge=1)
    auto_create_schema: bool = Field(
        default=True,
        description="Create missing tables on startup instead of relying on alembic",
    )
    conflict_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times an intent is attempted when it hits a write conflict",
    )
    rules_version: str = Field(default="1.0", description="Version tag of the rule tables")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins allowed to call the HTTP API",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
