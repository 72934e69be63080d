"""
Settings and environment management module for the RailSight backend.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development (nothing is required)
- Singleton pattern via @lru_cache for efficient access

Environment Variables (all prefixed with RAILSIGHT_):
- RAILSIGHT_DATA_DIR: Directory where uploaded campaigns are stored (default: ./data)
- RAILSIGHT_DEFAULT_STEP_M: Resampling step in metres (default: 1.0)
- RAILSIGHT_LIMITS_FILE: Optional JSON file with a channel-limit table
- RAILSIGHT_SEGMENT_API_BASE: Base URL of the remote segment service
- RAILSIGHT_SEGMENT_RETRY_DELAYS_S: JSON list of backoff delays in seconds

Usage:
    from railsight.core.config import get_settings

    settings = get_settings()
    step = settings.default_step_m
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The class inherits from pydantic-settings BaseSettings which provides:
    - Automatic loading from environment variables (case-insensitive)
    - Support for .env file loading
    - Type validation and coercion
    - Default values for optional settings

    Attributes:
        data_dir: Directory holding one sub-directory per stored campaign.
        default_step_m: Uniform grid step used when a request does not give one.
        cors_origins: Browser origins allowed to call the API.
        limits_file: JSON file with a LimitTable; the built-in table is used when unset.
        segment_api_base: Base URL of the remote segment service.
        segment_timeout_s: Per-request timeout for remote segment fetches.
        segment_retry_delays_s: Backoff delays between fetch attempts.
        default_segment_len_m: Window length returned by the segment endpoint.
        expected_step_min_m: Lower bound of the expected raw sampling step.
        expected_step_max_m: Upper bound of the expected raw sampling step.
        gauge_sanity_min_mm: Gauge values below this are reported as atypical.
        gauge_sanity_max_mm: Gauge values above this are reported as atypical.
    """

    model_config = SettingsConfigDict(
        env_prefix='RAILSIGHT_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',  # Ignore extra environment variables not defined in this class
        case_sensitive=False,
    )

    # =========================================================================
    # Storage
    # =========================================================================

    # Campaigns are stored as <data_dir>/<campaign_id>/data.json
    data_dir: Path = Path('./data')

    # =========================================================================
    # Analytics Defaults
    # =========================================================================

    # Resampling grid step in metres; the original survey data is sampled at ~1 m
    default_step_m: float = Field(default=1.0, gt=0)

    # Optional override of the built-in normative limit table
    limits_file: Optional[Path] = None

    # =========================================================================
    # HTTP Layer
    # =========================================================================

    cors_origins: List[str] = [
        'http://localhost:5173',  # Vite dev server
        'http://127.0.0.1:5173',
    ]

    # =========================================================================
    # Remote Segment Service
    # =========================================================================

    segment_api_base: str = 'http://localhost:8787'
    segment_timeout_s: float = Field(default=30.0, gt=0)

    # Free-tier hosts can take close to a minute to wake up, hence the long tail
    segment_retry_delays_s: List[float] = [2.0, 5.0, 10.0]

    default_segment_len_m: float = Field(default=2000.0, gt=0)

    # =========================================================================
    # Upload Quality Checks
    # =========================================================================

    expected_step_min_m: float = 0.5
    expected_step_max_m: float = 2.5
    gauge_sanity_min_mm: float = 1400.0
    gauge_sanity_max_mm: float = 1700.0


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns a cached Settings instance so environment variables are only
    loaded once during the application lifecycle.

    Returns:
        Settings: The application settings instance with all configuration values.

    Raises:
        pydantic.ValidationError: If an environment variable has an invalid value.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
