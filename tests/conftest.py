"""
Pytest configuration and shared fixtures for the media upload tests.
"""
from typing import Optional

import pytest
from hypothesis import settings, Verbosity

from media_upload.upload.config import MB, UploadConfig
from media_upload.upload.models import MediaFile

# Configure Hypothesis settings for all property-based tests
settings.register_profile(
    "default",
    max_examples=100,
    deadline=5000,
    suppress_health_check=[],
    verbosity=Verbosity.normal,
)

settings.register_profile(
    "ci",
    max_examples=200,
    deadline=10000,
    suppress_health_check=[],
    verbosity=Verbosity.quiet,
)

settings.register_profile(
    "debug",
    max_examples=10,
    deadline=None,
    suppress_health_check=[],
    verbosity=Verbosity.verbose,
)

settings.load_profile("default")


@pytest.fixture
def config():
    """Config with a slow estimator so tests drive ticks by hand."""
    return UploadConfig(
        api_base_url="https://media.test",
        realtime_enabled=False,
        estimator_interval_seconds=60.0,
    )


@pytest.fixture
def make_file(tmp_path):
    """Write a small file and describe it as a picked MediaFile."""

    def _make(
        name: str,
        mime_type: Optional[str] = None,
        size_bytes: Optional[int] = 2 * MB,
        content: bytes = b"media-bytes",
    ) -> MediaFile:
        path = tmp_path / name
        path.write_bytes(content)
        return MediaFile(uri=str(path), name=name, mime_type=mime_type, size_bytes=size_bytes)

    return _make
