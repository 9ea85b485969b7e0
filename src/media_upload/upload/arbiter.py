"""Single merge point for upload progress.

The arbiter owns both progress sources for a session and decides which one
is authoritative. It starts on simulated ticks and hands over to the
realtime channel on the first authentic event for the session's upload id.
The handoff is sticky: once made, the estimator never runs again for that
session, even if the realtime channel later disconnects.

Published progress never decreases within a session.
"""

from typing import Callable, Optional

from media_upload.core import get_logger
from media_upload.upload.estimator import SimulatedProgressEstimator
from media_upload.upload.models import ProgressEvent
from media_upload.upload.progress import (
    ProgressPhase,
    ProgressSourceKind,
    ProgressUpdate,
)
from media_upload.upload.realtime import RealtimeProgressChannel

logger = get_logger(__name__)

COMPLETE_STAGES = frozenset({"complete", "completed"})
FAILED_STAGES = frozenset({"error", "rejected"})
FINALIZING_STAGE = "finalizing"
VERIFYING_STAGES = frozenset({
    "received",
    "queued",
    "verifying",
    "validating",
    "moderating",
    "moderation",
})


class ProgressChannelArbiter:
    """Merges simulated and realtime progress under the sticky-handoff rule."""

    def __init__(
        self,
        estimator: SimulatedProgressEstimator,
        realtime: Optional[RealtimeProgressChannel] = None,
    ):
        self._estimator = estimator
        self._realtime = realtime
        self._upload_id: Optional[str] = None
        self._on_update: Optional[Callable[[ProgressUpdate], None]] = None
        self._using_realtime = False
        self._progress = 0.0

    @property
    def upload_id(self) -> Optional[str]:
        return self._upload_id

    @property
    def using_realtime(self) -> bool:
        return self._using_realtime

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def is_open(self) -> bool:
        return self._upload_id is not None

    @property
    def estimator(self) -> SimulatedProgressEstimator:
        return self._estimator

    @property
    def realtime(self) -> Optional[RealtimeProgressChannel]:
        return self._realtime

    def open(
        self,
        upload_id: str,
        on_update: Callable[[ProgressUpdate], None],
        credential: Optional[str] = None,
    ) -> None:
        """Start tracking a new session.

        Any previous session is closed first; progress restarts at zero.
        """
        self.close()
        self._upload_id = upload_id
        self._on_update = on_update
        self._using_realtime = False
        self._progress = 0.0

        self._estimator.start(upload_id, self._accept_estimate)
        if self._realtime is not None:
            self._realtime.start(upload_id, self._accept_event, credential)

        logger.info(
            "progress_tracking_started",
            upload_id=upload_id,
            realtime=self._realtime is not None,
        )

    def close(self) -> None:
        """Stop both sources and forget the session. Safe to call repeatedly."""
        self._estimator.stop()
        if self._realtime is not None:
            self._realtime.stop()
        if self._upload_id is not None:
            logger.info(
                "progress_tracking_closed",
                upload_id=self._upload_id,
                using_realtime=self._using_realtime,
                progress=round(self._progress, 1),
            )
        self._upload_id = None
        self._on_update = None

    def _accept_estimate(self, value: float) -> None:
        if self._upload_id is None or self._using_realtime:
            return
        self._publish(
            value,
            "Uploading...",
            ProgressPhase.UPLOADING,
            ProgressSourceKind.SIMULATED,
        )

    def _accept_event(self, event: ProgressEvent) -> None:
        if self._upload_id is None or event.upload_id != self._upload_id:
            logger.debug("progress_event_discarded", event_upload_id=event.upload_id)
            return

        if not self._using_realtime:
            self._using_realtime = True
            self._estimator.stop()
            logger.info(
                "realtime_handoff",
                upload_id=self._upload_id,
                simulated_progress=round(self._progress, 1),
            )

        stage = (event.stage or "").lower()
        if stage in COMPLETE_STAGES:
            self._finish(
                100.0,
                event.message or "Upload complete",
                ProgressPhase.SUCCESS,
                stage,
            )
        elif stage in FAILED_STAGES:
            self._finish(
                event.progress,
                event.message or "Upload failed",
                ProgressPhase.ERROR,
                stage,
            )
        elif stage == FINALIZING_STAGE:
            self._publish(
                event.progress,
                event.message or "Finalizing upload...",
                ProgressPhase.UPLOADING,
                ProgressSourceKind.REALTIME,
                stage,
            )
        else:
            phase = (
                ProgressPhase.VERIFYING
                if stage in VERIFYING_STAGES
                else ProgressPhase.UPLOADING
            )
            self._publish(
                event.progress,
                event.message or "Uploading...",
                phase,
                ProgressSourceKind.REALTIME,
                stage,
            )

    def _finish(
        self,
        value: float,
        message: str,
        phase: ProgressPhase,
        stage: str,
    ) -> None:
        # Sources stop before the terminal update is delivered
        upload_id = self._upload_id
        on_update = self._on_update
        self.close()
        update = self._merge(upload_id, value, message, phase, ProgressSourceKind.REALTIME, stage)
        if on_update is not None:
            on_update(update)

    def _publish(
        self,
        value: float,
        message: str,
        phase: ProgressPhase,
        source: ProgressSourceKind,
        stage: Optional[str] = None,
    ) -> None:
        update = self._merge(self._upload_id, value, message, phase, source, stage)
        if self._on_update is not None:
            self._on_update(update)

    def _merge(
        self,
        upload_id: Optional[str],
        value: float,
        message: str,
        phase: ProgressPhase,
        source: ProgressSourceKind,
        stage: Optional[str],
    ) -> ProgressUpdate:
        clamped = max(0.0, min(100.0, float(value)))
        self._progress = max(self._progress, clamped)
        return ProgressUpdate(
            upload_id=upload_id or "",
            progress=self._progress,
            message=message,
            phase=phase,
            source=source,
            stage=stage,
        )
