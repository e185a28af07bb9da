"""
Configuration settings for mastery-path.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are prefixed with MASTERY_PATH_, e.g. MASTERY_PATH_DATA_DIR.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MASTERY_PATH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".mastery_path",
        description="Directory holding ledger documents and attempt logs",
    )

    # ========================================
    # Session Defaults
    # ========================================
    default_tier: Literal["BASIC", "ADVANCED"] = Field(
        default="BASIC",
        description="Tier used when a command is not given --tier",
    )
    session_length: int | None = Field(
        default=None,
        ge=0,
        description="Questions per session (None = tier default: 20 basic, 25 advanced)",
    )
    random_seed: int | None = Field(
        default=None,
        description="Fixed seed for session sampling (None = unseeded)",
    )

    # ─── Policy constants for new ledgers ───────────────────────────────────────
    target_accuracy: int = Field(
        default=90,
        ge=0,
        le=100,
        description="Target accuracy stored on new ledgers",
    )
    daily_goal_minutes: int = Field(
        default=10,
        ge=0,
        description="Daily practice goal stored on new ledgers",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
