"""Upload pipeline: one instance per upload screen.

Wires live validation, credentials, the orchestrator, the progress arbiter,
the media store and the state machine together. Validation and auth problems
are raised to the caller before any network activity; every later failure
lands the state machine in ``error`` with the most specific message
available.
"""

import asyncio
from typing import Callable, Optional

from media_upload.core import get_logger
from media_upload.core.errors import (
    AuthError,
    InvalidTransitionError,
    MediaUploadError,
    ModerationRejection,
    ServerError,
    UploadAbortedError,
    ValidationError,
)
from media_upload.core.failures import (
    ErrorCategorizer,
    ErrorLogger,
    ErrorRecord,
    get_error_logger,
)
from media_upload.upload.arbiter import ProgressChannelArbiter
from media_upload.upload.classifier import screen_selection
from media_upload.upload.collaborators import (
    CredentialProvider,
    EnvCredentialProvider,
    InMemoryMediaStore,
    MediaStore,
)
from media_upload.upload.config import UploadConfig
from media_upload.upload.estimator import SimulatedProgressEstimator
from media_upload.upload.models import EligibilityReport, MediaFile, UploadMetadata
from media_upload.upload.moderation import ModerationOutcome, ModerationResolution
from media_upload.upload.orchestrator import UploadOrchestrator, new_upload_id
from media_upload.upload.progress import ProgressPhase, ProgressUpdate
from media_upload.upload.realtime import RealtimeProgressChannel
from media_upload.upload.state_machine import (
    Acknowledge,
    BeginVerification,
    Complete,
    Fail,
    Failed,
    ReportProgress,
    UploadSession,
    UploadState,
    UploadStateMachine,
    UploadStatus,
    Verifying,
)
from media_upload.upload.validator import EligibilityValidator, LiveValidation

logger = get_logger(__name__)


def build_arbiter(config: UploadConfig) -> ProgressChannelArbiter:
    realtime = None
    if config.realtime_enabled:
        realtime = RealtimeProgressChannel(config.resolved_realtime_url)
    return ProgressChannelArbiter(SimulatedProgressEstimator(config), realtime)


class UploadPipeline:
    """Drives a single file submission from form input to outcome."""

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        credentials: Optional[CredentialProvider] = None,
        media_store: Optional[MediaStore] = None,
        orchestrator: Optional[UploadOrchestrator] = None,
        arbiter: Optional[ProgressChannelArbiter] = None,
        error_logger: Optional[ErrorLogger] = None,
    ):
        self.config = config or UploadConfig()
        self.credentials = credentials or EnvCredentialProvider()
        self.media_store = media_store or InMemoryMediaStore()
        self.orchestrator = orchestrator or UploadOrchestrator(self.config)
        self.arbiter = arbiter or build_arbiter(self.config)
        self.error_logger = error_logger or get_error_logger()
        self.validator = EligibilityValidator(self.config)
        self.form = LiveValidation(self.validator)
        self.machine = UploadStateMachine()
        self.machine.on_terminal(self._cleanup)

        self._request_task: Optional[asyncio.Task] = None
        self._last_upload_id: Optional[str] = None
        self._dispatched = False
        self._aborted = False

    # Form

    @property
    def file(self) -> Optional[MediaFile]:
        return self.form.file

    @property
    def thumbnail(self) -> Optional[MediaFile]:
        return self.form.thumbnail

    @property
    def metadata(self) -> UploadMetadata:
        return self.form.metadata

    @property
    def report(self) -> Optional[EligibilityReport]:
        return self.form.report

    def select_file(self, file: MediaFile) -> Optional[EligibilityReport]:
        """Replace the selected file. Images and MOV video are refused."""
        return self.form.set_file(screen_selection(file))

    def select_thumbnail(self, thumbnail: Optional[MediaFile]) -> Optional[EligibilityReport]:
        return self.form.set_thumbnail(thumbnail)

    def update_metadata(self, **changes) -> Optional[EligibilityReport]:
        return self.form.update_metadata(**changes)

    # State

    @property
    def state(self) -> UploadState:
        return self.machine.state

    @property
    def status(self) -> UploadStatus:
        return self.machine.status

    @property
    def moderation(self) -> Optional[ModerationOutcome]:
        state = self.machine.state
        return state.moderation if isinstance(state, Failed) else None

    def subscribe(self, listener: Callable[[UploadState], None]) -> Callable[[], None]:
        return self.machine.subscribe(listener)

    @property
    def failures(self) -> list[ErrorRecord]:
        """Errors recorded for the most recent submission, oldest first.

        Still available after the outcome is acknowledged.
        """
        if self._last_upload_id is None:
            return []
        return self.error_logger.for_upload(self._last_upload_id)

    # Submission

    async def submit(self) -> UploadState:
        """Validate, authenticate and upload the current form.

        Returns:
            The terminal state (success or error)

        Raises:
            ValidationError: The form is not eligible; nothing was sent
            AuthError: No credential is available; nothing was sent
            InvalidTransitionError: A session is active or awaiting acknowledgment
        """
        if self.machine.status != UploadStatus.IDLE:
            raise InvalidTransitionError(self.machine.status.value, "Submit")

        report = self.validator.validate(self.file, self.metadata, self.thumbnail)
        self.form.report = report
        if not report.is_valid:
            logger.info("upload_blocked_by_validation", errors=report.errors)
            raise ValidationError(report.errors[0], errors=report.errors, report=report)

        token = await self.credentials.get_token()
        if not token:
            logger.info("upload_blocked_missing_credential")
            raise AuthError()

        session = UploadSession(upload_id=new_upload_id(), kind=report.kind)
        self._last_upload_id = session.upload_id
        self._dispatched = False
        self._aborted = False
        self.machine.dispatch(BeginVerification(session))

        self._request_task = asyncio.get_running_loop().create_task(
            self.orchestrator.submit(
                self.file,
                self.metadata,
                token,
                thumbnail=self.thumbnail,
                arbiter=self.arbiter,
                on_progress=self._on_progress,
                upload_id=session.upload_id,
                on_dispatched=self._on_dispatched,
            )
        )

        try:
            result = await self._request_task
        except asyncio.CancelledError:
            if self._aborted:
                return self.machine.state
            # The caller cancelled us: same cascade as teardown
            self.teardown()
            raise
        except Exception as e:
            self._fail(e, session)
            return self.machine.state
        finally:
            self._request_task = None

        if self.machine.session != session or not self.machine.is_active:
            logger.info("upload_response_ignored", upload_id=session.upload_id)
            return self.machine.state

        if isinstance(self.machine.state, Verifying):
            self.machine.dispatch(ReportProgress(100.0, "Finalizing upload..."))

        try:
            await self.media_store.add_media(result.record)
        except Exception as e:
            self._fail(e, session)
            return self.machine.state

        self.machine.dispatch(Complete(result.record))
        return self.machine.state

    def acknowledge(self) -> UploadState:
        """Return from success or error to idle.

        Fields are cleared after a success and kept after an error.
        """
        was_success = self.machine.status == UploadStatus.SUCCESS
        self.machine.dispatch(Acknowledge())
        if was_success:
            self.form.reset()
        return self.machine.state

    def resolve_moderation(self, resolution: ModerationResolution) -> bool:
        """Apply the user's choice after a moderation outcome.

        Both choices clear the moderation state and return to idle with the
        entered fields untouched.

        Returns:
            True when the caller may resubmit straight away (retry)
        """
        if self.moderation is None:
            raise InvalidTransitionError(self.machine.status.value, "ResolveModeration")
        self.machine.dispatch(Acknowledge())
        logger.info("moderation_resolved", resolution=resolution.value)
        return resolution == ModerationResolution.RETRY

    def dismiss_moderation(self) -> bool:
        return self.resolve_moderation(ModerationResolution.DISMISS)

    def retry_moderation(self) -> bool:
        return self.resolve_moderation(ModerationResolution.RETRY)

    def teardown(self) -> None:
        """Release every resource held for the active session.

        Called when the screen goes away. Safe to call repeatedly.
        """
        self.arbiter.close()
        if self.machine.is_active:
            self._abort(UploadAbortedError())
        elif self._request_task is not None and not self._request_task.done():
            self._aborted = True
            self._request_task.cancel()

    # Internals

    def _on_dispatched(self, upload_id: str) -> None:
        session = self.machine.session
        if session is not None and session.upload_id == upload_id:
            self._dispatched = True

    def _on_progress(self, update: ProgressUpdate) -> None:
        session = self.machine.session
        if not self.machine.is_active or session is None or update.upload_id != session.upload_id:
            return

        if update.phase == ProgressPhase.ERROR:
            if update.stage == "rejected":
                outcome = self.orchestrator.interpreter.interpret({"message": update.message})
                error: MediaUploadError = ModerationRejection(outcome.message, outcome=outcome)
            else:
                error = ServerError(update.message)
            self.error_logger.log_error(error, "progress_channel", upload_id=session.upload_id)
            self._abort(error)
            return

        if not self._dispatched:
            return
        self.machine.dispatch(ReportProgress(update.progress, update.message))

    def _abort(self, error: MediaUploadError) -> None:
        self._aborted = True
        self._report_failure(error)
        if self._request_task is not None and not self._request_task.done():
            self._request_task.cancel()

    def _fail(self, exc: BaseException, session: UploadSession) -> None:
        error = ErrorCategorizer.to_upload_error(exc)
        self.error_logger.log_error(error, "upload_pipeline", upload_id=session.upload_id)
        if self.machine.is_active and self.machine.session == session:
            self._report_failure(error)
        else:
            self.arbiter.close()

    def _report_failure(self, error: MediaUploadError) -> None:
        session = self.machine.session
        logger.warning(
            "upload_failed",
            upload_id=session.upload_id if session else None,
            error_code=error.error_code,
            progress=round(self.machine.state.progress, 1),
        )
        self.machine.dispatch(Fail(error))

    def _cleanup(self, state: UploadState) -> None:
        self.arbiter.close()
