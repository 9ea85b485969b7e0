"""Realtime progress channel over an authenticated WebSocket.

The ingestion service pushes ``upload-progress`` events for every upload in
flight on the connection. The channel subscribes with the session's upload id
and forwards only the events that carry that id.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from media_upload.core import get_logger
from media_upload.upload.models import ProgressEvent
from media_upload.upload.progress import ProgressSource, ProgressSourceKind

logger = get_logger(__name__)

PROGRESS_EVENT = "upload-progress"
SUBSCRIBE_EVENT = "subscribe-upload"


class PushConnection(ABC):
    """Minimal push-event connection used by the realtime channel."""

    @abstractmethod
    async def connect(self, url: str, credential: Optional[str]) -> None:
        pass

    @abstractmethod
    async def send_json(self, payload: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def receive(self) -> Optional[dict[str, Any]]:
        """Return the next decoded frame, or None once the connection closed."""

    @abstractmethod
    async def close(self) -> None:
        pass


class AiohttpPushConnection(PushConnection):
    """PushConnection backed by an aiohttp WebSocket."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        heartbeat: float = 25.0,
        connect_timeout: float = 20.0,
    ):
        self._session = session
        self._owns_session = session is None
        self._heartbeat = heartbeat
        self._connect_timeout = connect_timeout
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

    async def connect(self, url: str, credential: Optional[str]) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        headers = {"Authorization": f"Bearer {credential}"} if credential else {}
        self._ws = await asyncio.wait_for(
            self._session.ws_connect(url, headers=headers, heartbeat=self._heartbeat),
            timeout=self._connect_timeout,
        )

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self._ws is not None:
            await self._ws.send_json(payload)

    async def receive(self) -> Optional[dict[str, Any]]:
        if self._ws is None:
            return None
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    frame = json.loads(msg.data)
                except json.JSONDecodeError:
                    logger.debug("realtime_frame_not_json")
                    continue
                if isinstance(frame, dict):
                    return frame
                continue
            if msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
                aiohttp.WSMsgType.ERROR,
            ):
                return None

    async def close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None


class RealtimeProgressChannel(ProgressSource):
    """Forwards authentic progress events for the active upload id."""

    kind = ProgressSourceKind.REALTIME

    def __init__(
        self,
        url: str,
        connection_factory: Optional[Callable[[], PushConnection]] = None,
    ):
        self.url = url
        self._connection_factory = connection_factory or AiohttpPushConnection
        self._task: Optional[asyncio.Task] = None
        self._sink: Optional[Callable[[ProgressEvent], None]] = None
        self._upload_id: Optional[str] = None
        self.connected = False
        self.discarded = 0

    @property
    def active(self) -> bool:
        return self._sink is not None

    @property
    def upload_id(self) -> Optional[str]:
        return self._upload_id

    def start(
        self,
        upload_id: str,
        sink: Callable[[ProgressEvent], None],
        credential: Optional[str] = None,
    ) -> None:
        self.stop()
        self._upload_id = upload_id
        self._sink = sink
        self.discarded = 0
        connection = self._connection_factory()
        self._task = asyncio.get_running_loop().create_task(
            self._run(connection, upload_id, credential)
        )

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            # Stopped from inside our own reader: the loop exits once the
            # upload id is cleared and the connection closes normally
            if asyncio.current_task() is not self._task:
                self._task.cancel()
        if self._sink is not None:
            logger.debug("realtime_channel_stopped", upload_id=self._upload_id)
        self._task = None
        self._sink = None
        self._upload_id = None

    def dispatch(self, frame: dict[str, Any]) -> bool:
        """Handle one decoded frame from the connection.

        Returns:
            True if the frame was forwarded to the sink
        """
        if self._sink is None:
            return False
        if frame.get("event", PROGRESS_EVENT) != PROGRESS_EVENT:
            return False

        payload = frame.get("data", frame)
        try:
            event = ProgressEvent.model_validate(payload)
        except PydanticValidationError:
            logger.debug("progress_event_malformed", upload_id=self._upload_id)
            return False

        if event.upload_id != self._upload_id:
            self.discarded += 1
            logger.debug(
                "progress_event_discarded",
                upload_id=self._upload_id,
                event_upload_id=event.upload_id,
            )
            return False

        self._sink(event)
        return True

    async def _run(
        self,
        connection: PushConnection,
        upload_id: str,
        credential: Optional[str],
    ) -> None:
        try:
            try:
                await connection.connect(self.url, credential)
                await connection.send_json(
                    {"event": SUBSCRIBE_EVENT, "data": {"uploadId": upload_id}}
                )
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
                logger.warning(
                    "realtime_channel_unavailable",
                    upload_id=upload_id,
                    error=str(e),
                )
                return

            self.connected = True
            logger.info("realtime_channel_connected", upload_id=upload_id)

            while self._upload_id == upload_id:
                try:
                    frame = await connection.receive()
                except (aiohttp.ClientError, OSError) as e:
                    logger.warning("realtime_channel_error", upload_id=upload_id, error=str(e))
                    break
                if frame is None:
                    logger.info("realtime_channel_disconnected", upload_id=upload_id)
                    break
                self.dispatch(frame)
        finally:
            self.connected = False
            await connection.close()
