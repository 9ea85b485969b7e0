"""Media upload pipeline: validation, submission, progress and outcomes."""

from media_upload.upload.models import (
    CATEGORIES,
    ContentType,
    EligibilityReport,
    MediaFile,
    MediaKind,
    MediaRecord,
    ModerationResult,
    ProgressEvent,
    UploadMetadata,
    UploadResult,
)
from media_upload.upload.config import UploadConfig
from media_upload.upload.classifier import classify, guess_mime_type, is_image, screen_selection
from media_upload.upload.validator import EligibilityValidator, LiveValidation
from media_upload.upload.progress import (
    ProgressPhase,
    ProgressSource,
    ProgressSourceKind,
    ProgressUpdate,
)
from media_upload.upload.estimator import SimulatedProgressEstimator
from media_upload.upload.realtime import (
    AiohttpPushConnection,
    PushConnection,
    RealtimeProgressChannel,
)
from media_upload.upload.arbiter import ProgressChannelArbiter
from media_upload.upload.moderation import (
    ModerationOutcome,
    ModerationOutcomeInterpreter,
    ModerationResolution,
)
from media_upload.upload.collaborators import (
    CredentialProvider,
    EnvCredentialProvider,
    InMemoryMediaStore,
    MediaStore,
    StaticCredentialProvider,
)
from media_upload.upload.orchestrator import UploadOrchestrator, new_upload_id
from media_upload.upload.state_machine import (
    UploadSession,
    UploadState,
    UploadStateMachine,
    UploadStatus,
    transition,
)
from media_upload.upload.pipeline import UploadPipeline, build_arbiter

__all__ = [
    # Models
    "CATEGORIES",
    "ContentType",
    "EligibilityReport",
    "MediaFile",
    "MediaKind",
    "MediaRecord",
    "ModerationResult",
    "ProgressEvent",
    "UploadMetadata",
    "UploadResult",
    "UploadConfig",
    # Eligibility
    "classify",
    "guess_mime_type",
    "is_image",
    "screen_selection",
    "EligibilityValidator",
    "LiveValidation",
    # Progress
    "ProgressPhase",
    "ProgressSource",
    "ProgressSourceKind",
    "ProgressUpdate",
    "SimulatedProgressEstimator",
    "AiohttpPushConnection",
    "PushConnection",
    "RealtimeProgressChannel",
    "ProgressChannelArbiter",
    # Moderation
    "ModerationOutcome",
    "ModerationOutcomeInterpreter",
    "ModerationResolution",
    # Collaborators
    "CredentialProvider",
    "EnvCredentialProvider",
    "InMemoryMediaStore",
    "MediaStore",
    "StaticCredentialProvider",
    # Submission
    "UploadOrchestrator",
    "new_upload_id",
    "UploadSession",
    "UploadState",
    "UploadStateMachine",
    "UploadStatus",
    "transition",
    "UploadPipeline",
    "build_arbiter",
]
