"""Validator configuration via environment variables."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Validator settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "GTFS-realtime Validator"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Timestamps (E001, E050, W007, W008)
    min_posix_time: int = Field(
        default=1104537600,
        validation_alias=AliasChoices("MIN_POSIX_TIME", "GTFSRT_MIN_POSIX_TIME"),
    )
    max_posix_time: int = Field(
        default=1991620134,
        validation_alias=AliasChoices("MAX_POSIX_TIME", "GTFSRT_MAX_POSIX_TIME"),
    )
    minimum_refresh_interval_sec: int = 35
    max_age_sec: int = 65
    in_future_tolerance_sec: int = 60

    # Vehicles (W004)
    max_realistic_speed_mps: float = 26.0

    # Geospatial buffers (E028, E029)
    region_buffer_meters: float = 1609.0
    trip_buffer_meters: float = 200.0
    ignore_shapes: bool = Field(
        default=False,
        validation_alias=AliasChoices("IGNORE_SHAPES", "GTFSRT_IGNORE_SHAPES"),
    )

    # Engine
    validation_workers: int = Field(default=4, ge=1, le=64)
    validation_timeout_sec: Optional[float] = None

    # Batch processing
    results_file_extension: str = ".results.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
