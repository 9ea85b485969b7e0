"""Interpretation of moderation verdicts returned with HTTP 403.

The ingestion service answers 403 with ``{message, moderationResult: {status,
reason, flags}}`` when automated moderation rejects an upload or holds it for
review. This module turns that payload into a user-facing outcome with two
resolutions: dismiss, or retry without re-entering the form.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from media_upload.core import get_logger
from media_upload.upload.models import ModerationResult

logger = get_logger(__name__)

UNDER_REVIEW = "under_review"
REJECTED = "rejected"

REVIEW_MESSAGE = (
    "Your content is being reviewed by our team. We'll notify you once it's approved!"
)
REJECTED_MESSAGE = "Your upload did not pass content moderation."
GENERIC_REJECTION = (
    "Your upload was rejected. Please review your content and try again."
)

# Friendlier wording for common machine flags
FRIENDLY_FLAGS = (
    ("explicit", "inappropriate language"),
    ("violence", "violent content"),
    ("hateful", "harmful content"),
    ("not gospel", "content doesn't align with gospel values"),
)


class ModerationResolution(str, Enum):
    """Choices offered to the user after a moderation outcome."""
    DISMISS = "dismiss"
    RETRY = "retry"


@dataclass(frozen=True)
class ModerationOutcome:
    """User-actionable interpretation of a 403 response."""
    status: str
    message: str
    title: str
    friendly_message: str
    reason: Optional[str] = None
    flags: tuple[str, ...] = field(default_factory=tuple)
    structured: bool = True

    @property
    def is_review(self) -> bool:
        return self.status == UNDER_REVIEW

    @property
    def resolutions(self) -> tuple[ModerationResolution, ...]:
        return (ModerationResolution.DISMISS, ModerationResolution.RETRY)


def humanize_flag(flag: str) -> str:
    return flag.replace("_", " ")


def compose_message(base: str, reason: Optional[str], flags: list[str]) -> str:
    """Build the composite display message.

    Base message, then an optional ``Reason:`` line, then an optional bulleted
    list of flags with underscores turned into spaces.
    """
    parts = [base]
    if reason:
        parts.append(f"Reason: {reason}")
    if flags:
        bullets = "\n".join(f"• {humanize_flag(flag)}" for flag in flags)
        parts.append(f"Flagged for:\n{bullets}")
    return "\n\n".join(parts)


def format_friendly_message(
    status: Optional[str],
    reason: Optional[str],
    flags: Optional[list[str]],
) -> tuple[str, str]:
    """Return a (title, message) pair worded for the notification banner."""
    if status == UNDER_REVIEW:
        message = REVIEW_MESSAGE
        if reason:
            message += f"\n\nNote: {reason}"
        return "Under Review", message

    title = "Upload Needs Adjustment"
    if reason:
        message = reason[:-1] if reason.endswith(".") else reason
        return title, message + ". Don't worry, you can make adjustments and try again!"

    if flags:
        friendly = []
        for flag in flags:
            text = humanize_flag(flag).lower()
            for needle, wording in FRIENDLY_FLAGS:
                if needle in text:
                    text = wording
                    break
            friendly.append(text)
        if len(friendly) == 1:
            return title, (
                f"We noticed {friendly[0]} in your content. "
                "Please review and adjust before uploading again."
            )
        return title, (
            "We noticed some content that needs adjustment: "
            f"{' and '.join(friendly[:2])}. Please review and try again!"
        )

    return title, (
        "Your content needs a few adjustments to meet our community guidelines. "
        "No worries - you can edit and try again!"
    )


class ModerationOutcomeInterpreter:
    """Turns a 403 response body into a ModerationOutcome."""

    def interpret(self, body: Optional[Any]) -> ModerationOutcome:
        """Interpret a moderation response body.

        Args:
            body: Decoded JSON body, or None when the body was not JSON

        Returns:
            ModerationOutcome; a generic rejection when no verdict is present
        """
        server_message = None
        raw_result = None
        if isinstance(body, dict):
            server_message = body.get("message") or body.get("error")
            raw_result = body.get("moderationResult")

        result = None
        if isinstance(raw_result, dict):
            try:
                result = ModerationResult.model_validate(raw_result)
            except PydanticValidationError:
                logger.warning("moderation_result_malformed")

        if result is None:
            message = server_message or GENERIC_REJECTION
            title, friendly = format_friendly_message(REJECTED, None, None)
            logger.info("moderation_rejected_unstructured")
            return ModerationOutcome(
                status=REJECTED,
                message=message,
                title=title,
                friendly_message=friendly,
                structured=False,
            )

        status = result.status.lower()
        if server_message:
            base = server_message
        elif status == UNDER_REVIEW:
            base = REVIEW_MESSAGE
        else:
            base = REJECTED_MESSAGE

        title, friendly = format_friendly_message(status, result.reason, result.flags)
        logger.info(
            "moderation_outcome",
            status=status,
            flag_count=len(result.flags),
            has_reason=bool(result.reason),
        )
        return ModerationOutcome(
            status=status,
            message=compose_message(base, result.reason, result.flags),
            title=title,
            friendly_message=friendly,
            reason=result.reason,
            flags=tuple(result.flags),
        )
