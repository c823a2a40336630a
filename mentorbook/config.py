"""
Centralized configuration with environment variable overrides.

API endpoints, scheduling policy and occupancy thresholds are all
configurable here. Nothing is hardcoded in the scheduling logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from mentorbook.logging_context import attach_session_filter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag such as ``1``/``true``/``no``."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class ApiConfig:
    """REST API connection settings."""

    base_url: str = os.getenv("MENTORBOOK_API_BASE_URL", "http://localhost:8080")
    timeout_seconds: float = _safe_float("MENTORBOOK_API_TIMEOUT", "10.0")


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot generation and booking policy."""

    lead_time_minutes: int = _safe_int("LEAD_TIME_MINUTES", "0")
    occupancy_batch_size: int = _safe_int("OCCUPANCY_BATCH_SIZE", "5")
    max_message_length: int = _safe_int("MAX_MESSAGE_LENGTH", "500")
    single_window_per_day: bool = _safe_bool("SINGLE_WINDOW_PER_DAY", "true")


@dataclass(frozen=True)
class OccupancyConfig:
    """Ratio thresholds that bucket a day into an occupancy tier."""

    smooth_threshold: float = _safe_float("SMOOTH_THRESHOLD", "0.5")
    slight_threshold: float = _safe_float("SLIGHT_THRESHOLD", "0.3")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    api: ApiConfig = field(default_factory=ApiConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    occupancy: OccupancyConfig = field(default_factory=OccupancyConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not config.api.base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"MENTORBOOK_API_BASE_URL must be an http(s) URL, got {config.api.base_url!r}"
        )
    if config.api.timeout_seconds <= 0:
        raise ValueError(
            f"MENTORBOOK_API_TIMEOUT must be > 0, got {config.api.timeout_seconds}"
        )
    if config.scheduling.lead_time_minutes < 0:
        raise ValueError(
            f"LEAD_TIME_MINUTES must be >= 0, got {config.scheduling.lead_time_minutes}"
        )
    if config.scheduling.occupancy_batch_size < 1:
        raise ValueError(
            f"OCCUPANCY_BATCH_SIZE must be >= 1, got {config.scheduling.occupancy_batch_size}"
        )
    if config.scheduling.max_message_length < 1:
        raise ValueError(
            f"MAX_MESSAGE_LENGTH must be >= 1, got {config.scheduling.max_message_length}"
        )

    for name, value in [
        ("SMOOTH_THRESHOLD", config.occupancy.smooth_threshold),
        ("SLIGHT_THRESHOLD", config.occupancy.slight_threshold),
    ]:
        if not 0.0 < value <= 1.0:
            raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")

    if config.occupancy.slight_threshold >= config.occupancy.smooth_threshold:
        raise ValueError(
            "SLIGHT_THRESHOLD must be below SMOOTH_THRESHOLD, "
            f"got {config.occupancy.slight_threshold} >= {config.occupancy.smooth_threshold}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        attach_session_filter(handler)
    logger.info("Configuration loaded for API at '%s'", config.api.base_url)
    return config


# Singleton instance
settings = load_config()
