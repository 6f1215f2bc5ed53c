"""
Runtime configuration for the probate record engine.

Thresholds and the rejection-reason file location come from the environment
(prefix ``PROBATE_``) or a local ``.env`` file, never from magic numbers in code.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .calculator import (
    FORWARDING_DISPLAY_THRESHOLD_DAYS,
    KPI_THRESHOLD_DAYS,
    RECEIVING_DISPLAY_THRESHOLD_DAYS,
)


class Settings(BaseSettings):
    # Compliance
    kpi_threshold_days: int = Field(KPI_THRESHOLD_DAYS, ge=0)

    # Display-only colour bands (never validation gates)
    receiving_display_threshold_days: int = Field(RECEIVING_DISPLAY_THRESHOLD_DAYS, ge=0)
    forwarding_display_threshold_days: int = Field(FORWARDING_DISPLAY_THRESHOLD_DAYS, ge=0)

    # Reference data. None means the bundled data/rejection_reasons.json
    rejection_reasons_path: Optional[str] = None

    # Application
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="PROBATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached Settings instance. Call ``get_settings.cache_clear()`` after env changes."""
    return Settings()


__all__ = ["Settings", "get_settings"]
