"""
Centralized configuration module for application-wide settings.

Values are read from environment variables once at import time and logged
when a fallback is used, so a misconfigured deployment is visible in the
startup logs.
"""

import logging
import os
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from environment variable.

    Returns:
        ZoneInfo: Application timezone (defaults to UTC if not configured)

    Environment Variables:
        TZ: Timezone identifier (e.g., 'Europe/Madrid', 'UTC')
            Default: 'UTC'
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


APP_TZ = get_app_timezone()


def today() -> date:
    """Current date in the clinic's timezone."""
    return datetime.now(APP_TZ).date()


def log_timezone_config():
    """Log the active timezone configuration at startup."""
    logger.info(
        "Timezone configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "tz_env_var": os.getenv("TZ", "UTC"),
            }
        },
    )


# ===========================
# Clinic Hours Configuration
# ===========================

DEFAULT_OPEN_HOUR = 9
DEFAULT_CLOSE_HOUR = 19


def _get_int_env(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            f"Invalid integer for {name}; using default",
            extra={"context": {"value": raw, "default": default}},
        )
        return default
    if value < minimum or value > maximum:
        logger.warning(
            f"{name} out of range; using default",
            extra={
                "context": {
                    "value": value,
                    "min": minimum,
                    "max": maximum,
                    "default": default,
                }
            },
        )
        return default
    return value


def get_clinic_hours() -> tuple[int, int]:
    """
    Get the clinic opening and closing hour.

    Environment Variables:
        CLINIC_OPEN_HOUR: first bookable hour (default 9)
        CLINIC_CLOSE_HOUR: hour the last slot ends (default 19)

    Falls back to both defaults when open is not before close.
    """
    open_hour = _get_int_env("CLINIC_OPEN_HOUR", DEFAULT_OPEN_HOUR, 0, 23)
    close_hour = _get_int_env("CLINIC_CLOSE_HOUR", DEFAULT_CLOSE_HOUR, 0, 23)
    if open_hour >= close_hour:
        logger.warning(
            "Clinic opening hour must be before closing hour; using defaults",
            extra={"context": {"open_hour": open_hour, "close_hour": close_hour}},
        )
        return DEFAULT_OPEN_HOUR, DEFAULT_CLOSE_HOUR
    return open_hour, close_hour


CLINIC_OPEN_HOUR, CLINIC_CLOSE_HOUR = get_clinic_hours()


# ===========================
# Money / Pagination
# ===========================

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "EUR").strip().upper() or "EUR"

DEFAULT_PAGE_SIZE = _get_int_env("DEFAULT_PAGE_SIZE", 20, 1, 1000)
MAX_PAGE_SIZE = _get_int_env("MAX_PAGE_SIZE", 100, 1, 1000)


def log_clinic_config():
    """Log clinic-level settings at startup."""
    logger.info(
        "Clinic configuration initialized",
        extra={
            "context": {
                "open_hour": CLINIC_OPEN_HOUR,
                "close_hour": CLINIC_CLOSE_HOUR,
                "currency": DEFAULT_CURRENCY,
                "default_page_size": DEFAULT_PAGE_SIZE,
                "max_page_size": MAX_PAGE_SIZE,
            }
        },
    )


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")
