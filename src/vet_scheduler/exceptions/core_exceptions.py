"""
Core exceptions for the vet-scheduler package.

This module defines the exception hierarchy used by the scheduling core,
the database layer and configuration handling. Every scheduling error kind
carries a distinct ``error_code`` so that consumers can present an
actionable message without inspecting exception types.
"""

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse, urlunparse


class VetSchedulerException(Exception):
    """
    Base exception class for all vet-scheduler package exceptions.

    Provides a consistent interface for error handling across the package.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": time.time(),
        }

    def log_error(
        self, logger: Optional[logging.Logger] = None, level: int = logging.ERROR
    ) -> None:
        """
        Log the exception with appropriate level and context.

        Args:
            logger: Logger instance to use (creates default if None)
            level: Logging level to use
        """
        if logger is None:
            logger = logging.getLogger(__name__)

        log_data = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

        logger.log(
            level,
            f"Exception occurred: {self.message}",
            extra={"exception_data": log_data},
        )

    def __str__(self) -> str:
        """String representation of the exception."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


# Scheduling errors


class SchedulingException(VetSchedulerException):
    """Base exception for errors raised by the scheduling core."""


class ConflictError(SchedulingException):
    """Raised when a proposed interval overlaps an active appointment."""

    def __init__(
        self,
        message: str = "Requested time slot is no longer available",
        veterinarian_id: Optional[Any] = None,
        conflicting_appointment_id: Optional[Any] = None,
    ):
        """
        Initialize conflict error.

        Args:
            message: Error message
            veterinarian_id: Veterinarian whose schedule holds the conflict
            conflicting_appointment_id: The active appointment that overlaps
        """
        details: Dict[str, Any] = {}
        if veterinarian_id is not None:
            details["veterinarian_id"] = str(veterinarian_id)
        if conflicting_appointment_id is not None:
            details["conflicting_appointment_id"] = str(conflicting_appointment_id)

        super().__init__(
            message=message, error_code="APPOINTMENT_CONFLICT", details=details
        )


class OutsideWorkingHoursError(SchedulingException):
    """Raised when a proposed interval is not inside the veterinarian's hours."""

    def __init__(
        self,
        message: str = "The clinic is closed at the requested time",
        veterinarian_id: Optional[Any] = None,
        requested_start: Optional[Any] = None,
    ):
        details: Dict[str, Any] = {}
        if veterinarian_id is not None:
            details["veterinarian_id"] = str(veterinarian_id)
        if requested_start is not None:
            details["requested_start"] = str(requested_start)

        super().__init__(
            message=message, error_code="OUTSIDE_WORKING_HOURS", details=details
        )


class PastDateError(SchedulingException):
    """Raised when a proposed or queried time lies in the past."""

    def __init__(
        self,
        message: str = "Appointments cannot be booked in the past",
        requested_start: Optional[Any] = None,
        earliest_allowed: Optional[Any] = None,
    ):
        details: Dict[str, Any] = {}
        if requested_start is not None:
            details["requested_start"] = str(requested_start)
        if earliest_allowed is not None:
            details["earliest_allowed"] = str(earliest_allowed)

        super().__init__(message=message, error_code="PAST_DATE", details=details)


class InvalidTransitionError(SchedulingException):
    """
    Raised when a status transition is not legal.

    Covers both transitions missing from the lifecycle table and actors
    lacking permission for a transition that is otherwise legal.
    """

    def __init__(
        self,
        message: str = "Invalid appointment status transition",
        current_status: Optional[Any] = None,
        target_status: Optional[Any] = None,
        actor_role: Optional[Any] = None,
    ):
        details: Dict[str, Any] = {}
        if current_status is not None:
            details["current_status"] = getattr(current_status, "value", current_status)
        if target_status is not None:
            details["target_status"] = getattr(target_status, "value", target_status)
        if actor_role is not None:
            details["actor_role"] = getattr(actor_role, "value", actor_role)

        super().__init__(
            message=message, error_code="INVALID_TRANSITION", details=details
        )


class NotFoundError(SchedulingException):
    """Raised when a referenced appointment, veterinarian or pet does not exist."""

    def __init__(
        self,
        message: Optional[str] = None,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
    ):
        details: Dict[str, Any] = {"resource": resource}
        if resource_id is not None:
            details["resource_id"] = str(resource_id)

        super().__init__(
            message=message or f"{resource.replace('_', ' ').capitalize()} not found",
            error_code="NOT_FOUND",
            details=details,
        )


# Database errors


class DatabaseException(VetSchedulerException):
    """Base exception for database-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize database exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
            original_error: Original exception that caused this error
        """
        super().__init__(message, error_code, details)
        self.original_error = original_error

        if original_error and "original_error" not in self.details:
            self.details["original_error"] = str(original_error)


class ConnectionException(DatabaseException):
    """Exception raised when database connection fails."""

    def __init__(
        self,
        message: str = "Database connection failed",
        database_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize connection exception.

        Args:
            message: Error message
            database_url: Database URL (will be sanitized)
            original_error: Original exception
        """
        details = {}
        if database_url:
            details["database_url"] = self._sanitize_url(database_url)

        super().__init__(
            message=message,
            error_code="DATABASE_CONNECTION_ERROR",
            details=details,
            original_error=original_error,
        )

    @staticmethod
    def _sanitize_url(url: str) -> str:
        """Remove credentials from database URL for logging."""
        try:
            parsed = urlparse(url)
            if parsed.hostname is None:
                return urlunparse(parsed)
            netloc = parsed.hostname
            if parsed.port:
                netloc = f"{netloc}:{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
        except (ValueError, AttributeError) as e:
            return f"[URL_PARSE_ERROR: {e}]"


class TransactionException(DatabaseException):
    """Exception raised when database transaction fails."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize transaction exception.

        Args:
            message: Error message
            operation: Description of the failed operation
            original_error: Original exception
        """
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code="DATABASE_TRANSACTION_ERROR",
            details=details,
            original_error=original_error,
        )


class MigrationException(DatabaseException):
    """Exception raised when database migration fails."""

    def __init__(
        self,
        message: str = "Database migration failed",
        migration_version: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if migration_version:
            details["migration_version"] = migration_version

        super().__init__(
            message=message,
            error_code="DATABASE_MIGRATION_ERROR",
            details=details,
            original_error=original_error,
        )


# Validation and configuration errors


class ValidationException(VetSchedulerException):
    """Base exception for data validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        validation_errors: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize validation exception.

        Args:
            message: Error message
            field: Field that failed validation
            value: Value that failed validation
            validation_errors: Detailed validation errors
        """
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        if validation_errors:
            details["validation_errors"] = validation_errors

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class ConfigurationException(VetSchedulerException):
    """Base exception for configuration-related errors."""

    def __init__(
        self,
        message: str = "Configuration error",
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
    ):
        """
        Initialize configuration exception.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            config_value: Configuration value (will be sanitized)
        """
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_value:
            details["config_value"] = self._sanitize_config_value(
                config_key, config_value
            )

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )

    @staticmethod
    def _sanitize_config_value(key: Optional[str], value: str) -> str:
        """Sanitize configuration values to avoid exposing secrets."""
        if not key:
            return "[REDACTED]"

        sensitive_keys = ["password", "secret", "key", "token", "credential", "url"]
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            return "[REDACTED]"

        return value


# Utility functions for exception handling and error formatting


def format_validation_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Format Pydantic validation errors into a user-friendly structure.

    Args:
        errors: List of Pydantic validation errors

    Returns:
        Dictionary mapping field names to lists of error messages
    """
    formatted_errors: Dict[str, List[str]] = {}

    for error in errors:
        field_path = ".".join(str(loc) for loc in error.get("loc", []))
        if not field_path:
            field_path = "root"

        message = error.get("msg", "Validation error")
        error_type = error.get("type", "unknown")

        if error_type == "value_error":
            formatted_message = message
        elif error_type == "missing":
            formatted_message = "This field is required"
        else:
            formatted_message = f"{message} (type: {error_type})"

        formatted_errors.setdefault(field_path, []).append(formatted_message)

    return formatted_errors


def create_error_response(exception: VetSchedulerException) -> Dict[str, Any]:
    """
    Create a standardized error response from an exception.

    Args:
        exception: The exception to format

    Returns:
        Standardized error response dictionary
    """
    response: Dict[str, Any] = {
        "success": False,
        "error": {
            "type": exception.__class__.__name__,
            "code": exception.error_code,
            "message": exception.message,
        },
    }

    if exception.details:
        response["error"]["details"] = exception.details

    return response


def log_exception_context(
    exception: Exception,
    context: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with additional context information.

    Args:
        exception: The exception to log
        context: Additional context information
        logger: Logger instance to use
        level: Logging level
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if isinstance(exception, VetSchedulerException):
        log_data = exception.to_dict()
        log_data["context"] = context
        logger.log(
            level,
            f"Exception with context: {exception.message}",
            extra={"exception_data": log_data},
        )
    else:
        logger.log(
            level,
            f"Non-scheduler exception: {str(exception)}",
            extra={
                "exception_type": exception.__class__.__name__,
                "exception_message": str(exception),
                "context": context,
            },
        )
