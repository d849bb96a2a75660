"""
Application settings.

Loaded from environment variables with the ``BIRDRIDE_`` prefix (and an
optional ``.env`` file)::

    BIRDRIDE_EBIRD_API_KEY=abc123
    BIRDRIDE_SEARCH_RADIUS_KM=5
"""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the aggregator, data sources and CLI."""

    model_config = SettingsConfigDict(
        env_prefix="BIRDRIDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "birdride"
    app_env: str = "development"
    debug: bool = False
    log_level: str = Field(default="INFO", description="stdlib logging level")

    # eBird
    ebird_api_key: str | None = Field(default=None, description="eBird API token")
    ebird_api_base: str = "https://api.ebird.org/v2"

    # RideWithGPS
    ridewithgps_base: str = "https://ridewithgps.com"

    # Aggregation defaults
    search_radius_km: float = Field(default=2.5, gt=0, le=50)
    lookback_days: int = Field(default=14, ge=1, le=30)
    max_sample_points: int = Field(default=15, ge=1)
    proximity_miles: float | None = Field(default=None, ge=0)
    query_timeout_s: float = Field(default=30.0, gt=0, description="Deadline for one aggregation")
    max_workers: int = Field(default=30, ge=1)


def get_settings(**overrides: Any) -> Settings:
    """Build settings from the environment, with optional keyword overrides."""
    return Settings(**overrides)
