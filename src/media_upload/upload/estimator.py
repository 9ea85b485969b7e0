"""Simulated progress used while no realtime data is available."""

import asyncio
import random
from typing import Callable, Optional

from media_upload.core import get_logger
from media_upload.upload.config import UploadConfig
from media_upload.upload.progress import ProgressSource, ProgressSourceKind

logger = get_logger(__name__)


class SimulatedProgressEstimator(ProgressSource):
    """Repeating timer that nudges a synthetic progress value upward.

    Each tick adds a random step drawn from ``[min_step, max_step]``; the
    value never exceeds ``cap`` so the bar only completes on a real signal.
    """

    kind = ProgressSourceKind.SIMULATED

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        config = config or UploadConfig()
        self.interval = config.estimator_interval_seconds
        self.cap = config.estimator_cap
        self.min_step = config.estimator_min_step
        self.max_step = config.estimator_max_step
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None
        self._sink: Optional[Callable[[float], None]] = None
        self._upload_id: Optional[str] = None
        self.value = 0.0
        self.ticks = 0

    @property
    def active(self) -> bool:
        return self._sink is not None

    def start(
        self,
        upload_id: str,
        sink: Callable[[float], None],
        credential: Optional[str] = None,
    ) -> None:
        self.stop()
        self._upload_id = upload_id
        self._sink = sink
        self.value = 0.0
        self.ticks = 0
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug("estimator_started", upload_id=upload_id, interval=self.interval)

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._sink is not None:
            logger.debug("estimator_stopped", upload_id=self._upload_id, ticks=self.ticks)
        self._task = None
        self._sink = None

    def tick(self) -> Optional[float]:
        """Advance the synthetic value once and deliver it.

        Returns:
            The new value, or None when the estimator is stopped
        """
        if self._sink is None:
            return None
        step = self._rng.uniform(self.min_step, self.max_step)
        self.value = min(self.cap, self.value + step)
        self.ticks += 1
        self._sink(self.value)
        return self.value

    async def _run(self) -> None:
        while self._sink is not None:
            await asyncio.sleep(self.interval)
            self.tick()
