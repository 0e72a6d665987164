"""Configuration management."""

import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env for local runs, without overriding values already in the environment
BASE_DIR = Path(__file__).resolve().parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TERRITORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Map Configuration
    geometry_path: str = Field(default="./tile-data.json", description="Tile geometry JSON document")
    adjacency_threshold: float = Field(default=5.0, gt=0, description="Max endpoint distance for shared edges")
    adjacency_bbox_slack: float = Field(default=10.0, ge=0, description="Bounding box expansion for the prefilter")

    # Season Configuration
    season_start: datetime = Field(
        default=datetime(2025, 11, 17, 2, 0, tzinfo=timezone.utc),
        description="Start of day 1 (UTC)",
    )

    # Planner Configuration
    plan_url_param: str = Field(default="plan", description="Query parameter carrying a shared plan")
    playback_speed_ms: int = Field(default=1000, description="Default playback interval in milliseconds")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError(f"Unknown log format {value!r}")
        return value

    @field_validator("season_start")
    @classmethod
    def _force_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("playback_speed_ms")
    @classmethod
    def _check_speed(cls, value: int) -> int:
        from .core.playback import PLAYBACK_SPEEDS

        if value not in PLAYBACK_SPEEDS:
            raise ValueError(f"Unsupported playback speed {value}ms, expected one of {sorted(PLAYBACK_SPEEDS)}")
        return value


# Instantiate singleton settings object
settings = Settings()
