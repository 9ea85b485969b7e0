"""Progress source abstraction shared by the realtime channel and the estimator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class ProgressSourceKind(str, Enum):
    """Where a progress value came from."""
    REALTIME = "realtime"
    SIMULATED = "simulated"


class ProgressPhase(str, Enum):
    """Pipeline phase implied by a progress update."""
    VERIFYING = "verifying"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressPhase.SUCCESS, ProgressPhase.ERROR)


@dataclass(frozen=True)
class ProgressUpdate:
    """A merged progress value published by the arbiter."""
    upload_id: str
    progress: float
    message: str
    phase: ProgressPhase
    source: ProgressSourceKind
    stage: Optional[str] = None


class ProgressSource(ABC):
    """A producer of progress signals for one upload session.

    Implementations deliver signals to the sink given to ``start`` and must
    tolerate ``stop`` being called any number of times, including before
    ``start``.
    """

    kind: ProgressSourceKind

    @abstractmethod
    def start(
        self,
        upload_id: str,
        sink: Callable,
        credential: Optional[str] = None,
    ) -> None:
        """Begin producing signals for ``upload_id``."""

    @abstractmethod
    def stop(self) -> None:
        """Stop producing signals and release resources."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether the source is currently running."""
