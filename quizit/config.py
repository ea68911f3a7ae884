"""
Configuration settings for QuizIt.

Uses Pydantic Settings for environment variable management with .env file support.
Variables are prefixed with ``QUIZIT_`` (e.g. ``QUIZIT_DB_PATH``).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quizit.core.scheduler import SM2Config


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="QUIZIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    db_path: Path = Field(
        default=Path.home() / ".quizit" / "quizit.db",
        description="SQLite database holding collections, items and history",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Minimum loguru level written to stderr by the CLI",
    )

    # ========================================
    # SM-2 Scheduling
    # ========================================
    initial_ease: float = Field(default=2.5, description="Ease factor of a new item")
    minimum_ease: float = Field(default=1.3, description="Lower bound for the ease factor")
    first_interval: int = Field(default=1, description="Days after the first successful recall")
    second_interval: int = Field(default=6, description="Days after the second successful recall")

    # ========================================
    # Sessions
    # ========================================
    default_test_count: int | None = Field(
        default=None,
        description="Questions per test session (None = size of the collection)",
    )
    incorrect_weight: int = Field(
        default=3,
        ge=0,
        description="Replenishment share drawn from previously-missed items",
    )
    correct_weight: int = Field(
        default=1,
        ge=0,
        description="Replenishment share drawn from previously-known items",
    )
    recommended_due_cap: int = Field(
        default=15,
        description="Maximum due items in a recommended session",
    )

    @model_validator(mode="after")
    def check_replenish_weights(self) -> Settings:
        if self.incorrect_weight + self.correct_weight == 0:
            raise ValueError("incorrect_weight and correct_weight cannot both be 0")
        return self

    def get_sm2_config(self) -> SM2Config:
        """Get SM-2 constants as an algorithm config."""
        return SM2Config(
            initial_easiness=self.initial_ease,
            minimum_easiness=self.minimum_ease,
            first_interval=self.first_interval,
            second_interval=self.second_interval,
        )

    def get_replenish_weights(self) -> dict[str, int]:
        """Get replenishment weights keyed by AdaptiveSession argument name."""
        return {
            "incorrect_weight": self.incorrect_weight,
            "correct_weight": self.correct_weight,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
