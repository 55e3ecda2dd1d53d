"""Application configuration with startup validation.

All config is validated at import time via pydantic-settings.
Missing required values cause an immediate, clear error.
In live mode, the device bridge URL is required.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "SH_", "env_file": ".env"}

    # Provider mode: "fixture" or "live"
    provider_mode: Literal["fixture", "live"] = "fixture"

    # Fixture provider: JSON payload with canned samples
    fixture_path: str = ""

    # Live provider (device-side health bridge)
    provider_base_url: str = ""
    provider_access_token: str = ""

    # Platform version reported by the device; gates version-limited metrics
    platform_version: int = 17

    # Aggregation
    query_timeout_seconds: float = 20.0
    failure_mode: Literal["all_or_nothing", "partial"] = "all_or_nothing"

    # Sleep windows and clustering tolerances
    sleep_primary_window_hours: int = 36
    sleep_fallback_lookback_days: int = 365
    main_block_gap_minutes: float = 45.0
    fallback_night_gap_minutes: float = 120.0

    # Apnea
    apnea_lookback_days: int = 30
    reminder_locale: Literal["en", "zh"] = "en"

    # Workouts
    workout_lookback_days: int = 30
    workout_limit: int = 40

    # API
    api_version: str = "v1"

    # Retry
    retry_max_attempts: int = 3
    retry_max_wait_seconds: int = 30

    @model_validator(mode="after")
    def validate_live_mode_settings(self) -> "Settings":
        """Fail fast at startup if live mode is selected but the bridge URL is missing."""
        if self.provider_mode == "live" and not self.provider_base_url:
            raise ValueError(
                "provider_mode='live' requires a device bridge URL. "
                "Missing: SH_PROVIDER_BASE_URL"
            )
        if self.query_timeout_seconds <= 0:
            raise ValueError("SH_QUERY_TIMEOUT_SECONDS must be positive")
        return self


settings = Settings()
