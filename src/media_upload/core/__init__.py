"""Core utilities for the media upload pipeline."""

from media_upload.core.logging import get_logger, configure_logging
from media_upload.core.errors import (
    MediaUploadError,
    ValidationError,
    AuthError,
    UploadTimeoutError,
    ModerationRejection,
    NetworkError,
    ServerError,
    ParseError,
    UploadAbortedError,
    InvalidTransitionError,
)
from media_upload.core.failures import (
    ErrorCategory,
    ErrorCategorizer,
    ErrorLogger,
    ErrorRecord,
    get_error_logger,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    # Errors
    "MediaUploadError",
    "ValidationError",
    "AuthError",
    "UploadTimeoutError",
    "ModerationRejection",
    "NetworkError",
    "ServerError",
    "ParseError",
    "UploadAbortedError",
    "InvalidTransitionError",
    # Failure handling
    "ErrorCategory",
    "ErrorCategorizer",
    "ErrorLogger",
    "ErrorRecord",
    "get_error_logger",
]
