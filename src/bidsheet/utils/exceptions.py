"""Centralized exception classes for bidsheet.

This module provides a small hierarchy of custom exceptions with error kinds,
HTTP status code mapping, and structured error details for consistent
error handling between the record store, the HTTP surface and the client.

Exception Hierarchy:
    BidSheetError (base)
    ├── NotConfiguredError
    ├── InvalidIdentifierError
    ├── InvalidPayloadError
    └── BackingStoreError

Error Codes:
    Every error carries a machine-readable kind (e.g. "not_configured") which
    is returned to HTTP clients in the ``error`` field of the response body.
"""

from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError


class ErrorCode(str, Enum):
    """Enumeration of all error kinds exposed by the application."""

    NOT_CONFIGURED = "not_configured"
    INVALID_ID = "invalid_id"
    INVALID_PAYLOAD = "invalid_payload"
    FETCH_FAILED = "fetch_failed"
    UPDATE_FAILED = "update_failed"
    APPEND_FAILED = "append_failed"
    INTERNAL_ERROR = "internal_error"


class HTTPStatusMixin:
    """Mixin that provides HTTP status code for exceptions.

    Subclasses should set the `http_status` class attribute.
    """

    http_status: int = 500

    def get_http_status(self) -> int:
        """Get the HTTP status code for this exception."""
        return self.http_status


class BidSheetError(Exception, HTTPStatusMixin):
    """Base exception for all bidsheet errors.

    Attributes:
        message: Human-readable error message.
        error_code: Error kind from the ErrorCode enum.
        details: Optional dictionary with additional error details.
        http_status: HTTP status code for API responses (default 500).
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error kind from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to the error body used by the HTTP surface."""
        result: dict[str, Any] = {
            "error": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error kind."""
        return f"[{self.error_code.value}] {self.message}"


class NotConfiguredError(BidSheetError):
    """Raised when the spreadsheet connection settings are incomplete.

    Recoverable only by an operator setting the missing environment variables.
    """

    http_status: int = 503

    def __init__(
        self,
        missing: list[str] | None = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the names of the missing settings.

        Args:
            missing: Environment variable names that are unset or empty.
            message: Optional custom message.
            details: Additional details.
        """
        details = details or {}
        missing = missing or []
        if missing:
            details["missing"] = missing
        message = message or (
            "Google Sheets is not configured. Set "
            + (", ".join(missing) if missing else "the BIDSHEET_* variables")
            + " in the environment or .env file."
        )
        super().__init__(message, ErrorCode.NOT_CONFIGURED, details)
        self.missing = missing


class InvalidIdentifierError(BidSheetError):
    """Raised when a row id is not an integer addressing a data row."""

    http_status: int = 400

    def __init__(
        self,
        row_id: Any,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["row_id"] = str(row_id)
        message = message or (
            f"Invalid row number: {row_id} (must be an integer of 2 or more)"
        )
        super().__init__(message, ErrorCode.INVALID_ID, details)
        self.row_id = row_id


class InvalidPayloadError(BidSheetError):
    """Raised when a request body does not match the record schema."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation errors.

        Args:
            message: Main error message.
            errors: List of specific validation error messages.
            details: Additional details.
        """
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, ErrorCode.INVALID_PAYLOAD, details)
        self.errors = errors or []

    @classmethod
    def from_validation_error(
        cls, message: str, exc: PydanticValidationError
    ) -> "InvalidPayloadError":
        """Build from a pydantic ValidationError, one line per failing field."""
        errors = [
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        ]
        return cls(message=f"{message}: {'; '.join(errors)}", errors=errors)


class BackingStoreError(BidSheetError):
    """Raised when a call to the spreadsheet service fails.

    The message of the underlying failure is passed through verbatim so that
    operators can diagnose network, auth, quota or response problems.
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FETCH_FAILED,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the failing store operation.

        Args:
            message: Message of the underlying failure.
            error_code: Operation-specific error kind.
            operation: Name of the store operation (fetch, update, append).
            details: Additional details.
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, error_code, details)
        self.operation = operation
