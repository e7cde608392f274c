"""
Custom exception classes for the migration tracker.

This module provides:
- Error codes for programmatic error handling
- Specific exception classes for each failure kind
- Process exit codes so command-line callers can tell the kinds apart
"""

from typing import Any


class ErrorCode:
    """Error codes for programmatic error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"

    # Migration errors (2xxx)
    DUPLICATE_MIGRATION = "ERR_2001"

    # Store errors (5xxx)
    STORE_ERROR = "ERR_5001"
    STORE_CONNECTION_ERROR = "ERR_5002"
    STORE_TIMEOUT = "ERR_5003"


class MigrationTrackerError(Exception):
    """Base exception for all migration tracker errors."""

    error_code: str = ErrorCode.INTERNAL_ERROR
    exit_code: int = 1

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.error_code

    def to_dict(self) -> dict[str, Any]:
        """Structured form for JSON output."""
        return {
            "error": self.__class__.__name__,
            "code": self.error_code,
            "message": self.message,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(MigrationTrackerError):
    """Raised for an unrecognized status, an unknown filter key or empty input."""

    error_code = ErrorCode.VALIDATION_ERROR
    exit_code = 2

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field:
            data["field"] = self.field
        return data


# =============================================================================
# Migration State Errors
# =============================================================================


class NotFoundError(MigrationTrackerError):
    """Raised when no migration record exists for a name."""

    error_code = ErrorCode.NOT_FOUND
    exit_code = 4

    def __init__(self, name: str):
        super().__init__(f"Migration not found: {name}")
        self.name = name


class DuplicateMigrationError(MigrationTrackerError):
    """Raised when adding a migration whose name is already registered."""

    error_code = ErrorCode.DUPLICATE_MIGRATION
    exit_code = 3

    def __init__(self, name: str):
        super().__init__(f"Migration already exists: {name}")
        self.name = name


# =============================================================================
# Store Errors
# =============================================================================


class StoreError(MigrationTrackerError):
    """Raised for document store failures."""

    error_code = ErrorCode.STORE_ERROR
    exit_code = 5


class StoreConnectionError(StoreError):
    """Raised when the document store cannot be reached."""

    error_code = ErrorCode.STORE_CONNECTION_ERROR


class StoreTimeoutError(StoreError):
    """Raised when a store call exceeds its deadline. The mutation's outcome is unknown."""

    error_code = ErrorCode.STORE_TIMEOUT
    exit_code = 6
