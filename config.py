"""
Configuration settings for the ninja practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NINJA_HOME = Path.home() / ".ninja"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NINJA_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Durable learner store
    # ========================================
    database_url: str = Field(
        default=f"sqlite:///{NINJA_HOME / 'learners.db'}",
        description="SQLAlchemy URL of the learner record store",
    )

    # ========================================
    # Resumable cache
    # ========================================
    cache_dir: Path = Field(
        default=NINJA_HOME / "cache",
        description="Directory holding cached sessions and daily batches",
    )

    # ========================================
    # Curriculum & content
    # ========================================
    curriculum_path: Path | None = Field(
        default=None,
        description="Curriculum JSON file (packaged sample when unset)",
    )
    content_api_url: str | None = Field(
        default=None,
        description="Content pool API base URL (offline JSON pool when unset)",
    )
    content_file: Path | None = Field(
        default=None,
        description="Offline content pool JSON file (packaged sample when unset)",
    )
    content_timeout_ms: int = Field(
        default=10000,
        description="Content pool request timeout in milliseconds",
    )
    content_retry_attempts: int = Field(
        default=3,
        description="Attempts per content pool request before giving up",
    )

    # ========================================
    # Practice rules
    # ========================================
    default_grade: int = Field(
        default=7,
        description="Grade used for content queries when the learner has none",
    )
    day_cutover_hour: int = Field(
        default=4,
        ge=0,
        le=23,
        description="Local hour at which a new practice day starts",
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used for practice-day arithmetic",
    )
    session_question_cap: int = Field(
        default=20,
        description="Maximum questions served in one subject session",
    )
    direct_query_limit: int = Field(
        default=10,
        description="Maximum items taken from the direct question collection",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level for the CLI sink",
    )

    def has_content_api(self) -> bool:
        """Check if a remote content pool is configured."""
        return bool(self.content_api_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
