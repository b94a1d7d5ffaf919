"""
Configuration management utilities.

This module provides environment variable handling with type conversion,
database URL validation, logging configuration utilities and the
scheduling settings consumed by the scheduling service.
"""

import logging
import logging.config
import os
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs, urlparse

from ..exceptions import ConfigurationException
from .datetime_utils import get_zone


class ConfigError(ConfigurationException):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, config_key=config_key)


class LogLevel(Enum):
    """Enumeration for log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentConfig:
    """Utility class for handling environment variables with type conversion."""

    @staticmethod
    def get_str(
        key: str, default: Optional[str] = None, required: bool = False
    ) -> Optional[str]:
        """
        Get a string environment variable.

        Args:
            key: Environment variable key
            default: Default value if not found
            required: Whether the variable is required

        Returns:
            String value or default

        Raises:
            ConfigError: If required variable is missing
        """
        value = os.getenv(key, default)

        if required and value is None:
            raise ConfigError(f"Required environment variable '{key}' is not set", key)

        return value

    @staticmethod
    def get_int(
        key: str, default: Optional[int] = None, required: bool = False
    ) -> Optional[int]:
        """
        Get an integer environment variable.

        Raises:
            ConfigError: If required variable is missing or invalid
        """
        value = os.getenv(key)

        if value is None:
            if required:
                raise ConfigError(
                    f"Required environment variable '{key}' is not set", key
                )
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got: {value}", key
            )


class DatabaseURLValidator:
    """Utility class for validating database URLs."""

    SUPPORTED_DRIVERS = {
        "postgresql": ["postgresql", "postgresql+asyncpg"],
        "sqlite": ["sqlite", "sqlite+aiosqlite"],
    }

    @classmethod
    def validate_url(cls, url: str) -> Dict[str, Any]:
        """
        Validate a database URL and return parsed components.

        Args:
            url: Database URL to validate

        Returns:
            Dictionary with validation results and parsed components

        Raises:
            ConfigError: If URL is invalid
        """
        if not url:
            raise ConfigError("Database URL cannot be empty")

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ConfigError(f"Invalid URL format: {e}")

        if not parsed.scheme:
            raise ConfigError(
                "Database URL must include a scheme (e.g., postgresql://)"
            )

        backend = None
        for db_type, drivers in cls.SUPPORTED_DRIVERS.items():
            if parsed.scheme in drivers:
                backend = db_type
                break

        if backend is None:
            supported_list = [
                driver
                for drivers in cls.SUPPORTED_DRIVERS.values()
                for driver in drivers
            ]
            raise ConfigError(
                f"Unsupported database driver '{parsed.scheme}'. "
                f"Supported: {', '.join(supported_list)}"
            )

        if backend != "sqlite":
            if not parsed.hostname:
                raise ConfigError("Database URL must include a hostname")
            if not parsed.path.lstrip("/"):
                raise ConfigError("Database URL must include a database name")

        return {
            "valid": True,
            "backend": backend,
            "scheme": parsed.scheme,
            "hostname": parsed.hostname,
            "port": parsed.port,
            "database": parsed.path.lstrip("/") if parsed.path else "",
            "username": parsed.username,
            "query": dict(parse_qs(parsed.query)),
        }


class LoggingConfigurator:
    """Utility class for configuring logging."""

    DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @staticmethod
    def configure_basic_logging(
        level: Union[str, LogLevel] = LogLevel.INFO,
        format_string: Optional[str] = None,
        log_file: Optional[str] = None,
    ) -> None:
        """
        Configure basic logging for the application.

        Args:
            level: Logging level
            format_string: Custom format string
            log_file: Optional log file path
        """
        if isinstance(level, LogLevel):
            level = level.value

        basic_config_args: Dict[str, Any] = {
            "level": level,
            "format": format_string or LoggingConfigurator.DEFAULT_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }

        if log_file:
            basic_config_args["filename"] = log_file
            basic_config_args["filemode"] = "a"

        logging.basicConfig(**basic_config_args)

    @staticmethod
    def configure_structured_logging(
        config_dict: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None
    ) -> None:
        """
        Configure structured logging using a dictionary or file.

        Args:
            config_dict: Logging configuration dictionary
            config_file: Path to logging configuration file
        """
        if config_file and Path(config_file).exists():
            logging.config.fileConfig(config_file)
        elif config_dict:
            logging.config.dictConfig(config_dict)
        else:
            default_config = {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "standard": {"format": LoggingConfigurator.DEFAULT_FORMAT},
                    "detailed": {
                        "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s - %(message)s"
                    },
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": "INFO",
                        "formatter": "standard",
                        "stream": "ext://sys.stdout",
                    }
                },
                "loggers": {
                    "vet_scheduler": {
                        "level": "INFO",
                        "handlers": ["console"],
                        "propagate": False,
                    }
                },
                "root": {"level": "WARNING", "handlers": ["console"]},
            }
            logging.config.dictConfig(default_config)


@dataclass(frozen=True)
class SchedulingSettings:
    """
    Policy knobs for the scheduling service.

    Attributes:
        clinic_timezone: IANA zone in which working hours and query dates
            are interpreted
        default_slot_minutes: Slot length for veterinarians that do not set one
        booking_notice_minutes: Minimum lead time between now and a bookable
            slot start
        cancellation_notice_minutes: Minimum lead time a client needs to
            cancel a confirmed appointment
    """

    clinic_timezone: str = "UTC"
    default_slot_minutes: int = 30
    booking_notice_minutes: int = 0
    cancellation_notice_minutes: int = 0

    def __post_init__(self) -> None:
        try:
            get_zone(self.clinic_timezone)
        except ValueError as e:
            raise ConfigError(str(e), "clinic_timezone")
        if self.default_slot_minutes <= 0:
            raise ConfigError(
                "Default slot length must be positive", "default_slot_minutes"
            )
        if self.booking_notice_minutes < 0:
            raise ConfigError(
                "Booking notice cannot be negative", "booking_notice_minutes"
            )
        if self.cancellation_notice_minutes < 0:
            raise ConfigError(
                "Cancellation notice cannot be negative",
                "cancellation_notice_minutes",
            )

    @property
    def booking_notice(self) -> timedelta:
        return timedelta(minutes=self.booking_notice_minutes)

    @property
    def cancellation_notice(self) -> timedelta:
        return timedelta(minutes=self.cancellation_notice_minutes)

    @classmethod
    def from_environment(cls, prefix: str = "VET_SCHEDULER_") -> "SchedulingSettings":
        """Build settings from ``VET_SCHEDULER_*`` environment variables."""
        return cls(
            clinic_timezone=EnvironmentConfig.get_str(
                f"{prefix}CLINIC_TIMEZONE", "UTC"
            ),
            default_slot_minutes=EnvironmentConfig.get_int(
                f"{prefix}DEFAULT_SLOT_MINUTES", 30
            ),
            booking_notice_minutes=EnvironmentConfig.get_int(
                f"{prefix}BOOKING_NOTICE_MINUTES", 0
            ),
            cancellation_notice_minutes=EnvironmentConfig.get_int(
                f"{prefix}CANCELLATION_NOTICE_MINUTES", 0
            ),
        )
