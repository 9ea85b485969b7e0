"""External collaborators of the upload pipeline.

The pipeline only depends on these small interfaces; the app supplies real
implementations (secure token storage, the shared media store).
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

from media_upload.core import get_logger
from media_upload.upload.models import MediaRecord

logger = get_logger(__name__)


class CredentialProvider(ABC):
    """Supplies a bearer token on demand."""

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """Return the current token, or None when the user is signed out."""


class StaticCredentialProvider(CredentialProvider):
    def __init__(self, token: Optional[str]):
        self._token = token

    async def get_token(self) -> Optional[str]:
        return self._token


class EnvCredentialProvider(CredentialProvider):
    """Reads the token from an environment variable at call time."""

    def __init__(self, variable: str = "MEDIA_UPLOAD_TOKEN"):
        self.variable = variable

    async def get_token(self) -> Optional[str]:
        token = os.environ.get(self.variable, "").strip()
        return token or None


class MediaStore(ABC):
    """Receives normalized records of successful uploads."""

    @abstractmethod
    async def add_media(self, record: MediaRecord) -> None:
        pass


class InMemoryMediaStore(MediaStore):
    """Keeps records in insertion order, newest last."""

    def __init__(self):
        self.records: list[MediaRecord] = []

    async def add_media(self, record: MediaRecord) -> None:
        self.records.append(record)
        logger.info("media_record_stored", media_id=record.id, title=record.title)

    def get(self, media_id: str) -> Optional[MediaRecord]:
        for record in self.records:
            if record.id == media_id:
                return record
        return None
