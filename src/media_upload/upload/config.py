"""Configuration for the upload pipeline."""

import os
from typing import Optional

from pydantic import BaseModel, Field

MB = 1024 * 1024


class UploadConfig(BaseModel):
    """Settings shared by the orchestrator, progress sources and validator."""

    api_base_url: str = Field(
        default="https://jevahapp-backend.onrender.com",
        description="Base URL of the ingestion service",
    )
    upload_path: str = Field(default="/api/media/upload", description="Upload endpoint path")
    realtime_url: Optional[str] = Field(
        default=None,
        description="WebSocket URL for progress events; derived from api_base_url when unset",
    )
    realtime_enabled: bool = Field(default=True, description="Open the realtime channel")
    upload_id_header: str = Field(default="X-Upload-Id", description="Header carrying the upload id")

    video_timeout_seconds: float = Field(default=600.0, description="Timeout for video uploads")
    default_timeout_seconds: float = Field(default=300.0, description="Timeout for other uploads")

    estimator_interval_seconds: float = Field(default=0.5, description="Simulated tick interval")
    estimator_cap: float = Field(default=85.0, description="Ceiling for simulated progress")
    estimator_min_step: float = Field(default=1.0, description="Smallest simulated step")
    estimator_max_step: float = Field(default=5.0, description="Largest simulated step")

    max_video_bytes: int = Field(default=100 * MB)
    max_audio_bytes: int = Field(default=50 * MB)
    max_document_bytes: int = Field(default=50 * MB)
    max_title_length: int = Field(default=100)
    description_soft_limit: int = Field(default=500)

    @property
    def upload_url(self) -> str:
        return self.api_base_url.rstrip("/") + self.upload_path

    @property
    def resolved_realtime_url(self) -> str:
        if self.realtime_url:
            return self.realtime_url
        base = self.api_base_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return base + "/ws/uploads"

    @classmethod
    def from_env(cls) -> "UploadConfig":
        """Build a config from MEDIA_UPLOAD_* environment variables."""
        defaults = cls()
        return cls(
            api_base_url=os.environ.get("MEDIA_UPLOAD_API_BASE_URL", defaults.api_base_url),
            realtime_url=os.environ.get("MEDIA_UPLOAD_REALTIME_URL") or None,
            realtime_enabled=os.environ.get("MEDIA_UPLOAD_REALTIME_ENABLED", "true").lower()
            in ("1", "true", "yes"),
            video_timeout_seconds=float(
                os.environ.get("MEDIA_UPLOAD_VIDEO_TIMEOUT_SECONDS", defaults.video_timeout_seconds)
            ),
            default_timeout_seconds=float(
                os.environ.get("MEDIA_UPLOAD_DEFAULT_TIMEOUT_SECONDS", defaults.default_timeout_seconds)
            ),
            estimator_interval_seconds=float(
                os.environ.get(
                    "MEDIA_UPLOAD_ESTIMATOR_INTERVAL_SECONDS", defaults.estimator_interval_seconds
                )
            ),
            estimator_cap=float(os.environ.get("MEDIA_UPLOAD_ESTIMATOR_CAP", defaults.estimator_cap)),
        )
