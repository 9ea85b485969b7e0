"""Custom exception classes for the media upload pipeline."""

from typing import Any, Optional


class MediaUploadError(Exception):
    """Base exception for all media upload errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ValidationError(MediaUploadError):
    """Pre-flight validation failure. Never reaches the network."""

    def __init__(
        self,
        message: str,
        errors: Optional[list[str]] = None,
        report: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="VALIDATION", **kwargs)
        self.errors = errors or [message]
        self.report = report
        self.details.update({"errors": self.errors})


class AuthError(MediaUploadError):
    """Missing or invalid credential."""

    def __init__(self, message: str = "Please log in to upload content.", **kwargs):
        super().__init__(message, error_code="AUTH", **kwargs)


class UploadTimeoutError(MediaUploadError):
    """Request aborted after the kind-specific timeout elapsed."""

    def __init__(
        self,
        message: str = "Request timed out. Please try again.",
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="TIMEOUT", **kwargs)
        self.timeout_seconds = timeout_seconds
        self.details.update({"timeout_seconds": timeout_seconds})


class ModerationRejection(MediaUploadError):
    """Upload refused or held by content moderation (HTTP 403)."""

    def __init__(self, message: str, outcome: Optional[Any] = None, **kwargs):
        super().__init__(message, error_code="MODERATION", **kwargs)
        self.outcome = outcome
        if outcome is not None:
            self.details.update({
                "status": getattr(outcome, "status", None),
                "flags": list(getattr(outcome, "flags", []) or []),
            })


class NetworkError(MediaUploadError):
    """Connection or transport failure."""

    def __init__(
        self,
        message: str = (
            "Network connection failed. Please check your internet "
            "connection and try again."
        ),
        **kwargs,
    ):
        super().__init__(message, error_code="NETWORK", **kwargs)


class ServerError(MediaUploadError):
    """Non-2xx response other than a moderation rejection."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, error_code="SERVER", **kwargs)
        self.status_code = status_code
        self.details.update({"status_code": status_code})


class ParseError(MediaUploadError):
    """Unexpected body on an otherwise successful response."""

    def __init__(
        self,
        message: str = "Server returned unexpected response. Please try again.",
        status_code: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, error_code="PARSE", **kwargs)
        self.status_code = status_code
        self.details.update({"status_code": status_code})


class UploadAbortedError(MediaUploadError):
    """Session torn down before the server answered."""

    def __init__(self, message: str = "Upload was cancelled.", **kwargs):
        super().__init__(message, error_code="ABORTED", **kwargs)


class InvalidTransitionError(MediaUploadError):
    """Event not accepted by the upload state machine in its current state."""

    def __init__(self, state: str, event: str, **kwargs):
        super().__init__(
            f"Cannot apply {event} while {state}",
            error_code="INVALID_TRANSITION",
            **kwargs,
        )
        self.state = state
        self.event = event
        self.details.update({"state": state, "event": event})
