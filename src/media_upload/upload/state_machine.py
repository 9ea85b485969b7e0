"""Upload state machine.

States form a closed union: idle, verifying, uploading, success, error. Each
state carries only the data valid for it, so a success can never hold a
stale error message. All changes go through ``transition``.

    idle -> verifying -> uploading -> success | error
    verifying -> error
    success | error -> idle   (explicit acknowledgment only)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Union

from media_upload.core import get_logger
from media_upload.core.errors import (
    InvalidTransitionError,
    MediaUploadError,
    ModerationRejection,
)
from media_upload.upload.models import MediaKind, MediaRecord

logger = get_logger(__name__)


class UploadStatus(str, Enum):
    """Status of the upload pipeline."""
    IDLE = "idle"
    VERIFYING = "verifying"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class UploadSession:
    """One submission attempt. A retry always creates a new session."""
    upload_id: str
    kind: MediaKind = MediaKind.UNKNOWN
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# States

@dataclass(frozen=True)
class Idle:
    status = UploadStatus.IDLE
    progress = 0.0
    message = ""


@dataclass(frozen=True)
class Verifying:
    session: UploadSession
    message: str = "Verifying upload..."
    status = UploadStatus.VERIFYING
    progress = 0.0


@dataclass(frozen=True)
class Uploading:
    session: UploadSession
    progress: float
    message: str = "Uploading..."
    status = UploadStatus.UPLOADING


@dataclass(frozen=True)
class Succeeded:
    session: UploadSession
    record: MediaRecord
    message: str = "Upload successful"
    status = UploadStatus.SUCCESS
    progress = 100.0


@dataclass(frozen=True)
class Failed:
    session: UploadSession
    error: MediaUploadError
    progress: float = 0.0
    status = UploadStatus.ERROR

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def moderation(self):
        if isinstance(self.error, ModerationRejection):
            return self.error.outcome
        return None


UploadState = Union[Idle, Verifying, Uploading, Succeeded, Failed]


# Events

@dataclass(frozen=True)
class BeginVerification:
    session: UploadSession


@dataclass(frozen=True)
class ReportProgress:
    progress: float
    message: str = "Uploading..."


@dataclass(frozen=True)
class Complete:
    record: MediaRecord


@dataclass(frozen=True)
class Fail:
    error: MediaUploadError


@dataclass(frozen=True)
class Acknowledge:
    pass


UploadEvent = Union[BeginVerification, ReportProgress, Complete, Fail, Acknowledge]


def transition(state: UploadState, event: UploadEvent) -> UploadState:
    """Return the state reached by applying ``event`` to ``state``.

    Raises:
        InvalidTransitionError: If the event is not accepted in ``state``
    """
    if isinstance(state, Idle) and isinstance(event, BeginVerification):
        return Verifying(session=event.session)

    if isinstance(state, Verifying):
        if isinstance(event, ReportProgress):
            return Uploading(
                session=state.session,
                progress=_clamp(event.progress),
                message=event.message,
            )
        if isinstance(event, Fail):
            return Failed(session=state.session, error=event.error)

    if isinstance(state, Uploading):
        if isinstance(event, ReportProgress):
            return Uploading(
                session=state.session,
                progress=max(state.progress, _clamp(event.progress)),
                message=event.message,
            )
        if isinstance(event, Complete):
            return Succeeded(session=state.session, record=event.record)
        if isinstance(event, Fail):
            return Failed(session=state.session, error=event.error, progress=state.progress)

    if isinstance(state, (Succeeded, Failed)) and isinstance(event, Acknowledge):
        return Idle()

    raise InvalidTransitionError(state.status.value, type(event).__name__)


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class UploadStateMachine:
    """Holds the current state and notifies listeners of every change.

    Terminal hooks run on every entry into success or error, whether or
    not cleanup already happened elsewhere.
    """

    def __init__(self):
        self._state: UploadState = Idle()
        self._listeners: list[Callable[[UploadState], None]] = []
        self._terminal_hooks: list[Callable[[UploadState], None]] = []

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def status(self) -> UploadStatus:
        return self._state.status

    @property
    def session(self) -> Optional[UploadSession]:
        return getattr(self._state, "session", None)

    @property
    def is_active(self) -> bool:
        return self.status in (UploadStatus.VERIFYING, UploadStatus.UPLOADING)

    def subscribe(self, listener: Callable[[UploadState], None]) -> Callable[[], None]:
        """Register a state listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_terminal(self, hook: Callable[[UploadState], None]) -> None:
        self._terminal_hooks.append(hook)

    def dispatch(self, event: UploadEvent) -> UploadState:
        previous = self._state
        self._state = transition(previous, event)

        if previous.status != self._state.status:
            logger.info(
                "upload_state_changed",
                upload_id=getattr(getattr(self._state, "session", None), "upload_id", None),
                from_status=previous.status.value,
                to_status=self._state.status.value,
            )

        if self._state.status in (UploadStatus.SUCCESS, UploadStatus.ERROR):
            for hook in list(self._terminal_hooks):
                hook(self._state)

        for listener in list(self._listeners):
            listener(self._state)
        return self._state
