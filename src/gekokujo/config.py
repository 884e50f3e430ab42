"""Lightweight configuration for the gekokujo tools."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through ``GEKOKUJO_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEKOKUJO_", env_file=".env", env_file_encoding="utf-8"
    )

    data_dir: Path = Field(default=Path("data"), description="Where the JSON collections live")
    max_operation_records: int = Field(
        default=100,
        description="Operation log entries kept, newest first",
        gt=0,
    )
    max_snapshots: int = Field(
        default=20,
        description="Snapshots kept before the oldest are pruned",
        gt=0,
    )
    log_level: str = Field(default="INFO", description="Root log level used by the CLI")
    default_admin_code: str = Field(
        default="admin",
        description="Admin code written to a fresh game state",
    )
    dice_salt: str = Field(
        default="",
        description="Prefix mixed into every investment seed",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
