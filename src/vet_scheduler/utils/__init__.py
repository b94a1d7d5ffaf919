"""
Utility functions and helper modules.

This module provides common utility functions for datetime handling,
configuration management, and other shared functionality.
"""

from .config import (
    ConfigError,
    DatabaseURLValidator,
    EnvironmentConfig,
    LoggingConfigurator,
    LogLevel,
    SchedulingSettings,
)
from .datetime_utils import (
    UTC,
    DayOfWeek,
    ensure_utc,
    format_duration,
    from_utc,
    get_current_local,
    get_current_utc,
    get_zone,
    intervals_overlap,
    local_day_bounds,
    local_to_utc,
    time_of_day,
)

__all__ = [
    # DateTime utilities
    "UTC",
    "DayOfWeek",
    "get_zone",
    "get_current_utc",
    "get_current_local",
    "ensure_utc",
    "local_to_utc",
    "from_utc",
    "local_day_bounds",
    "time_of_day",
    "intervals_overlap",
    "format_duration",
    # Configuration utilities
    "ConfigError",
    "LogLevel",
    "EnvironmentConfig",
    "DatabaseURLValidator",
    "LoggingConfigurator",
    "SchedulingSettings",
]
