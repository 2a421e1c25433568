"""Application configuration via pydantic-settings.

Reads from .env file or environment variables prefixed with TEA_WORKFLOW_.
All settings are validated at first access, so a malformed value fails fast
with a clear error message.

Usage:
    from tea_workflow.config import get_settings
    settings = get_settings()
    print(settings.match_threshold)
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the tea bid workflow core."""

    model_config = SettingsConfigDict(
        env_prefix="TEA_WORKFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_log_level: str = "DEBUG"
    app_json_logs: bool = False

    # --- Workflow automation ---
    rule_action_timeout_seconds: float = Field(default=30.0, gt=0)
    overdue_eslip_days: int = Field(default=7, ge=0)

    # --- Payment matching ---
    match_threshold: int = Field(default=70, ge=0)
    amount_tolerance: Decimal = Decimal("0.01")
    approximate_amount_ratio: Decimal = Decimal("0.05")

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
