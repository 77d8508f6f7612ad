"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="NEMT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "NEMT Ride Acceptance API"
    api_prefix: str = "/api"

    # Google Distance Matrix
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Google Distance Matrix API. Distances are estimated when unset.",
    )
    maps_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api",
        description="Base URL for the Google Maps web services.",
    )
    maps_timeout_seconds: float = Field(default=10.0, gt=0.0)
    maps_max_retries: int = Field(default=2, ge=0)
    maps_backoff_seconds: float = Field(default=0.5, ge=0.0)

    # Acceptance scoring
    max_driver_distance: float = Field(default=50.0, gt=0.0, description="Maximum driver-to-pickup miles.")
    distance_weight: float = Field(default=1.0, ge=0.0)
    time_weight: float = Field(default=0.3, ge=0.0)
    urgency_weight: float = Field(default=0.2, ge=0.0)
    time_of_day_weight: float = Field(default=0.25, ge=0.0)
    day_of_week_weight: float = Field(default=0.15, ge=0.0)
    normalize_weights: bool = Field(
        default=False,
        description="Divide the weighted sum by the total weight before scaling to 0-100. Off keeps the clamped raw sum.",
    )
    processing_batch_size: int = Field(
        default=5,
        ge=1,
        description="Maximum number of concurrent Distance Matrix requests when a matrix is chunked.",
    )

    # Distance cache
    distance_cache_expiry_days: int = Field(default=30, ge=1)
    distance_cache_max_size: int = Field(default=10000, ge=1)

    # Synthetic distance estimates
    fallback_min_miles: float = Field(default=1.0, ge=0.0)
    fallback_max_miles: float = Field(default=25.0, gt=0.0)
    fallback_minutes_per_mile: float = Field(default=2.5, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:5174",
            "http://127.0.0.1:5174",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()

    @field_validator("google_maps_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


settings = Settings()
