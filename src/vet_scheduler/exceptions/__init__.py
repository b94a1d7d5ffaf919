"""
Custom exceptions for the vet scheduler package.

This module defines the exception hierarchy and custom exceptions
used throughout the appointment scheduling core.
"""

from .core_exceptions import (  # Utility functions
    ConfigurationException,
    ConflictError,
    ConnectionException,
    DatabaseException,
    InvalidTransitionError,
    MigrationException,
    NotFoundError,
    OutsideWorkingHoursError,
    PastDateError,
    SchedulingException,
    TransactionException,
    ValidationException,
    VetSchedulerException,
    create_error_response,
    format_validation_errors,
    log_exception_context,
)

__all__ = [
    # Exception classes
    "VetSchedulerException",
    "SchedulingException",
    "ConflictError",
    "OutsideWorkingHoursError",
    "PastDateError",
    "InvalidTransitionError",
    "NotFoundError",
    "DatabaseException",
    "ConnectionException",
    "TransactionException",
    "MigrationException",
    "ValidationException",
    "ConfigurationException",
    # Utility functions
    "format_validation_errors",
    "create_error_response",
    "log_exception_context",
]
