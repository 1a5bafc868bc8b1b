"""Utilities package for bidsheet.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from bidsheet.utils.exceptions import (
    BackingStoreError,
    BidSheetError,
    ErrorCode,
    HTTPStatusMixin,
    InvalidIdentifierError,
    InvalidPayloadError,
    NotConfiguredError,
)
from bidsheet.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "BackingStoreError",
    "BidSheetError",
    "ErrorCode",
    "HTTPStatusMixin",
    "InvalidIdentifierError",
    "InvalidPayloadError",
    "NotConfiguredError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
