"""Failure categorization and error logging.

Maps any exception raised while submitting a file onto the upload error
taxonomy and keeps a bounded record of what went wrong:
- Categorization by exception type, error code, then message keywords
- Conversion of raw transport exceptions into MediaUploadError subclasses
- Structured error logging with per-session lookup and per-category counts
"""

import asyncio
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import aiohttp
import structlog

from media_upload.core.errors import (
    AuthError,
    MediaUploadError,
    NetworkError,
    ParseError,
    ServerError,
    UploadTimeoutError,
)

logger = structlog.get_logger(__name__)


class ErrorCategory(str, Enum):
    """Categories for error classification."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    TIMEOUT = "timeout"
    MODERATION = "moderation"
    NETWORK = "network"
    SERVER = "server"
    PARSING = "parsing"
    ABORTED = "aborted"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class ErrorRecord:
    """Record of an error occurrence."""

    timestamp: datetime
    category: ErrorCategory
    error_type: str
    message: str
    component: str
    upload_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "error_type": self.error_type,
            "message": self.message,
            "component": self.component,
            "upload_id": self.upload_id,
            "details": self.details,
        }


class ErrorCategorizer:
    """Categorizes errors for logging and user-facing handling."""

    CODE_CATEGORIES = {
        "VALIDATION": ErrorCategory.VALIDATION,
        "AUTH": ErrorCategory.AUTHENTICATION,
        "TIMEOUT": ErrorCategory.TIMEOUT,
        "MODERATION": ErrorCategory.MODERATION,
        "NETWORK": ErrorCategory.NETWORK,
        "SERVER": ErrorCategory.SERVER,
        "PARSE": ErrorCategory.PARSING,
        "ABORTED": ErrorCategory.ABORTED,
        "INVALID_TRANSITION": ErrorCategory.INTERNAL,
    }

    # Order matters: timeouts are also OSErrors on some platforms
    EXCEPTION_CATEGORIES = (
        (asyncio.TimeoutError, ErrorCategory.TIMEOUT),
        (TimeoutError, ErrorCategory.TIMEOUT),
        (aiohttp.ContentTypeError, ErrorCategory.PARSING),
        (aiohttp.ClientResponseError, ErrorCategory.SERVER),
        (aiohttp.ClientError, ErrorCategory.NETWORK),
        (ConnectionError, ErrorCategory.NETWORK),
        (PermissionError, ErrorCategory.AUTHENTICATION),
        (ValueError, ErrorCategory.PARSING),
    )

    MESSAGE_KEYWORDS = {
        ErrorCategory.TIMEOUT: ["timeout", "timed out", "abort"],
        ErrorCategory.NETWORK: ["network request failed", "connection", "fetch", "dns"],
        ErrorCategory.AUTHENTICATION: ["401", "unauthorized", "token"],
        ErrorCategory.PARSING: ["parse", "decode", "malformed"],
    }

    @classmethod
    def categorize(cls, error: BaseException) -> ErrorCategory:
        """Categorize an exception.

        Args:
            error: The exception to categorize.

        Returns:
            ErrorCategory for the exception.
        """
        if isinstance(error, MediaUploadError):
            return cls.CODE_CATEGORIES.get(error.error_code or "", ErrorCategory.UNKNOWN)

        for exc_type, category in cls.EXCEPTION_CATEGORIES:
            if isinstance(error, exc_type):
                return category

        error_msg = str(error).lower()
        for category, keywords in cls.MESSAGE_KEYWORDS.items():
            if any(kw in error_msg for kw in keywords):
                return category

        return ErrorCategory.UNKNOWN

    @classmethod
    def to_upload_error(cls, error: BaseException) -> MediaUploadError:
        """Convert any exception into a MediaUploadError.

        MediaUploadError instances are returned unchanged. Anything else is
        wrapped in the most specific taxonomy class, keeping the original
        message when it is more informative than the generic fallback.
        """
        if isinstance(error, MediaUploadError):
            return error

        category = cls.categorize(error)
        details = {"cause": type(error).__name__}
        if category == ErrorCategory.TIMEOUT:
            return UploadTimeoutError(details=details)
        if category == ErrorCategory.NETWORK:
            return NetworkError(details=details)
        if category == ErrorCategory.AUTHENTICATION:
            return AuthError(details=details)
        if category == ErrorCategory.PARSING:
            return ParseError(details=details)
        if category == ErrorCategory.SERVER:
            status = getattr(error, "status", None)
            return ServerError(str(error) or f"HTTP {status}", status_code=status, details=details)
        return MediaUploadError(
            str(error) or "Something went wrong.",
            error_code="UNKNOWN",
            details=details,
        )


class ErrorLogger:
    """Logs upload failures and remembers the most recent ones per session.

    The pipeline records every failure here; callers read them back with
    ``for_upload`` to show what happened to a given submission.
    """

    def __init__(self, max_history: int = 200):
        self._records: deque[ErrorRecord] = deque(maxlen=max_history)
        self._counts: Counter[ErrorCategory] = Counter()

    def log_error(
        self,
        error: BaseException,
        component: str,
        upload_id: Optional[str] = None,
    ) -> ErrorRecord:
        category = ErrorCategorizer.categorize(error)
        record = ErrorRecord(
            timestamp=datetime.now(timezone.utc),
            category=category,
            error_type=type(error).__name__,
            message=getattr(error, "message", None) or str(error),
            component=component,
            upload_id=upload_id,
            details=dict(getattr(error, "details", None) or {}),
        )
        self._records.append(record)
        self._counts[category] += 1

        logger.error(
            "upload_error_recorded",
            category=category.value,
            error_type=record.error_type,
            message=record.message,
            component=component,
            upload_id=upload_id,
        )
        return record

    def for_upload(self, upload_id: str) -> list[ErrorRecord]:
        """Records logged for one upload session, oldest first."""
        return [r for r in self._records if r.upload_id == upload_id]

    def counts(self) -> dict[str, int]:
        return {category.value: self._counts[category] for category in ErrorCategory}


_error_logger = ErrorLogger()


def get_error_logger() -> ErrorLogger:
    """Get the global error logger instance."""
    return _error_logger
