"""Builds, sends and interprets the multipart upload request.

Implements the HTTP side of a submission:
- Fresh upload id per submission, sent as a header and a form field
- Content type normalization (sermon, ebook) and multipart body assembly
- Kind-specific timeout that aborts the in-flight request
- Response interpretation into success or a typed error
"""

import asyncio
import json
import uuid
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import unquote, urlparse

import aiohttp

from media_upload.core import get_logger
from media_upload.core.errors import (
    AuthError,
    ModerationRejection,
    NetworkError,
    ParseError,
    ServerError,
    UploadTimeoutError,
    ValidationError,
)
from media_upload.upload.arbiter import ProgressChannelArbiter
from media_upload.upload.classifier import classify
from media_upload.upload.config import UploadConfig
from media_upload.upload.models import (
    ContentType,
    MediaFile,
    MediaKind,
    MediaRecord,
    UploadMetadata,
    UploadResult,
)
from media_upload.upload.moderation import ModerationOutcomeInterpreter
from media_upload.upload.progress import ProgressUpdate

logger = get_logger(__name__)


def new_upload_id() -> str:
    return uuid.uuid4().hex


def normalize_content_type(content_type: str, kind: MediaKind) -> str:
    """Map user-facing content types onto the server's categories.

    Sermons are stored as music or videos depending on the file; ebooks are
    stored as books.
    """
    value = (content_type or "").lower()
    if value == ContentType.SERMON.value:
        return ContentType.VIDEOS.value if kind == MediaKind.VIDEO else ContentType.MUSIC.value
    if value == ContentType.EBOOK.value:
        return ContentType.BOOKS.value
    return value


def local_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(uri)


class UploadOrchestrator:
    """Sends one submission to the ingestion service.

    Progress tracking is delegated to a ProgressChannelArbiter, which is
    opened before the request is dispatched and closed on every exit path.
    """

    def __init__(
        self,
        config: Optional[UploadConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        interpreter: Optional[ModerationOutcomeInterpreter] = None,
    ):
        self.config = config or UploadConfig()
        self._session = session
        self.interpreter = interpreter or ModerationOutcomeInterpreter()

    def timeout_for(self, kind: MediaKind) -> float:
        if kind == MediaKind.VIDEO:
            return self.config.video_timeout_seconds
        return self.config.default_timeout_seconds

    def build_form(
        self,
        stack: ExitStack,
        upload_id: str,
        file: MediaFile,
        metadata: UploadMetadata,
        thumbnail: Optional[MediaFile] = None,
    ) -> aiohttp.FormData:
        """Assemble the multipart body.

        File handles are registered on ``stack`` and closed by the caller.
        """
        kind = classify(file)
        form = aiohttp.FormData()
        form.add_field(
            "file",
            stack.enter_context(local_path(file.uri).open("rb")),
            filename=file.name,
            content_type=file.mime_type or "application/octet-stream",
        )
        if thumbnail is not None:
            form.add_field(
                "thumbnail",
                stack.enter_context(local_path(thumbnail.uri).open("rb")),
                filename=thumbnail.name,
                content_type=thumbnail.mime_type or "image/jpeg",
            )
        form.add_field("title", metadata.title)
        form.add_field("description", metadata.description or "")
        if file.size_bytes:
            form.add_field("fileSize", str(file.size_bytes))
        form.add_field("contentType", normalize_content_type(metadata.content_type, kind))
        form.add_field("genre", json.dumps([metadata.category.lower(), "All"]))
        form.add_field("topics", json.dumps([]))
        form.add_field("uploadId", upload_id)
        return form

    async def submit(
        self,
        file: MediaFile,
        metadata: UploadMetadata,
        credential: Optional[str],
        thumbnail: Optional[MediaFile] = None,
        arbiter: Optional[ProgressChannelArbiter] = None,
        on_progress: Optional[Callable[[ProgressUpdate], None]] = None,
        upload_id: Optional[str] = None,
        on_dispatched: Optional[Callable[[str], None]] = None,
    ) -> UploadResult:
        """Submit a file and wait for the server's verdict.

        Args:
            file: Media file to upload
            metadata: Validated metadata
            credential: Bearer token
            thumbnail: Optional cover image
            arbiter: Progress arbiter opened for the duration of the request
            on_progress: Callback receiving merged ProgressUpdates
            upload_id: Upload id to use; generated when omitted
            on_dispatched: Callback invoked once the request is about to be sent

        Returns:
            UploadResult with the normalized media record

        Raises:
            AuthError, UploadTimeoutError, ModerationRejection, NetworkError,
            ServerError, ParseError
        """
        if not credential:
            raise AuthError("Authentication token missing. Please log in again.")

        upload_id = upload_id or new_upload_id()
        kind = classify(file)
        timeout = self.timeout_for(kind)

        if arbiter is not None:
            arbiter.open(upload_id, on_progress or (lambda update: None), credential)

        try:
            with ExitStack() as stack:
                try:
                    form = self.build_form(stack, upload_id, file, metadata, thumbnail)
                except OSError as e:
                    logger.error("upload_file_unreadable", upload_id=upload_id, error=str(e))
                    raise ValidationError(
                        "The selected file could not be read. Please select it again."
                    ) from e
                headers = {
                    "Authorization": f"Bearer {credential}",
                    "Accept": "application/json",
                    self.config.upload_id_header: upload_id,
                }
                logger.info(
                    "upload_dispatched",
                    upload_id=upload_id,
                    kind=kind.value,
                    file_size=file.size_bytes,
                    timeout_seconds=timeout,
                    has_thumbnail=thumbnail is not None,
                )
                if on_dispatched is not None:
                    on_dispatched(upload_id)
                try:
                    status, body, raw_text = await asyncio.wait_for(
                        self._send(form, headers),
                        timeout=timeout,
                    )
                except asyncio.TimeoutError:
                    logger.warning("upload_timed_out", upload_id=upload_id, timeout_seconds=timeout)
                    raise UploadTimeoutError(timeout_seconds=timeout)
                except aiohttp.ClientError as e:
                    logger.warning("upload_network_error", upload_id=upload_id, error=str(e))
                    raise NetworkError(details={"cause": type(e).__name__})
        finally:
            if arbiter is not None:
                arbiter.close()

        return self._interpret(upload_id, status, body, raw_text, file, metadata)

    async def _send(
        self,
        form: aiohttp.FormData,
        headers: dict[str, str],
    ) -> tuple[int, Optional[Any], Optional[str]]:
        if self._session is not None:
            return await self._post(self._session, form, headers)
        async with aiohttp.ClientSession() as session:
            return await self._post(session, form, headers)

    async def _post(
        self,
        session: aiohttp.ClientSession,
        form: aiohttp.FormData,
        headers: dict[str, str],
    ) -> tuple[int, Optional[Any], Optional[str]]:
        async with session.post(self.config.upload_url, data=form, headers=headers) as response:
            content_type = response.headers.get("Content-Type", "")
            body = None
            raw_text = None
            if "application/json" in content_type:
                try:
                    body = await response.json(content_type=None)
                except (json.JSONDecodeError, aiohttp.ContentTypeError):
                    raw_text = await response.text()
            else:
                raw_text = await response.text()
            return response.status, body, raw_text

    def _interpret(
        self,
        upload_id: str,
        status: int,
        body: Optional[Any],
        raw_text: Optional[str],
        file: MediaFile,
        metadata: UploadMetadata,
    ) -> UploadResult:
        if status == 403:
            outcome = self.interpreter.interpret(body)
            raise ModerationRejection(outcome.message, outcome=outcome)

        if not 200 <= status < 300:
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            if not message:
                message = f"Unexpected response ({status})." if raw_text else f"HTTP {status}"
            logger.error(
                "upload_rejected_by_server",
                upload_id=upload_id,
                status=status,
                body_preview=(raw_text or "")[:300] or None,
            )
            raise ServerError(message, status_code=status)

        if not isinstance(body, dict):
            logger.error(
                "upload_response_not_json",
                upload_id=upload_id,
                status=status,
                body_preview=(raw_text or "")[:300] or None,
            )
            raise ParseError(status_code=status)

        media = body.get("media")
        if not isinstance(media, dict):
            raise ParseError(
                "Server response did not include the uploaded media.",
                status_code=status,
            )

        record = MediaRecord.from_server(media, metadata, file)
        logger.info("upload_succeeded", upload_id=upload_id, media_id=record.id)
        return UploadResult(
            upload_id=upload_id,
            status_code=status,
            record=record,
            raw_media=media,
        )
