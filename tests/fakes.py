"""Test doubles shared across the media upload tests."""

import asyncio
import json
from typing import Any, Callable, Optional

import aiohttp

from media_upload.upload.progress import ProgressSource, ProgressSourceKind
from media_upload.upload.realtime import PushConnection


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def progress_frame(upload_id: str, progress: float = 0.0, stage: str = "uploading", message: str = "") -> dict:
    return {
        "event": "upload-progress",
        "data": {
            "uploadId": upload_id,
            "stage": stage,
            "progress": progress,
            "message": message,
        },
    }


def form_fields(form: aiohttp.FormData) -> dict[str, Any]:
    """Map multipart field names to their values."""
    return {options["name"]: value for options, _, value in form._fields}


class FakeResponse:
    """Stands in for aiohttp.ClientResponse inside ``async with``."""

    def __init__(
        self,
        status: int = 201,
        body: Optional[Any] = None,
        text: Optional[str] = None,
        content_type: str = "application/json",
    ):
        self.status = status
        self._body = body
        self._text = text
        self.headers = {"Content-Type": content_type}

    async def json(self, content_type=None):
        if self._body is None:
            raise json.JSONDecodeError("Expecting value", self._text or "", 0)
        return self._body

    async def text(self):
        if self._text is not None:
            return self._text
        return json.dumps(self._body)


class _PendingPost:
    def __init__(self, session: "FakeHTTPSession", response: FakeResponse):
        self._session = session
        self._response = response

    async def __aenter__(self):
        if self._session.gate is not None:
            await self._session.gate.wait()
        if self._session.delay:
            await asyncio.sleep(self._session.delay)
        if self._session.error is not None:
            raise self._session.error
        return self._response

    async def __aexit__(self, *exc):
        return False


class FakeHTTPSession:
    """Records posts and replays canned responses in order.

    The last response repeats once the list is exhausted.
    """

    def __init__(
        self,
        *responses: FakeResponse,
        delay: float = 0.0,
        error: Optional[BaseException] = None,
    ):
        self.responses = list(responses) or [FakeResponse()]
        self.delay = delay
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.requests: list[dict[str, Any]] = []

    def hold(self) -> asyncio.Event:
        """Block responses until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    def post(self, url, data=None, headers=None):
        self.requests.append({"url": url, "data": data, "headers": headers})
        index = min(len(self.requests) - 1, len(self.responses) - 1)
        return _PendingPost(self, self.responses[index])


class FakePushConnection(PushConnection):
    """In-memory push connection. Put frames (or None) on ``frames``."""

    def __init__(self, fail_connect: bool = False, slow_close: bool = False):
        self.fail_connect = fail_connect
        self.slow_close = slow_close
        self.frames: asyncio.Queue = asyncio.Queue()
        self.sent: list[dict[str, Any]] = []
        self.url: Optional[str] = None
        self.credential: Optional[str] = None
        self.closed = False

    async def connect(self, url: str, credential: Optional[str]) -> None:
        self.url = url
        self.credential = credential
        if self.fail_connect:
            raise aiohttp.ClientConnectionError("connection refused")

    async def send_json(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)

    async def receive(self) -> Optional[dict[str, Any]]:
        return await self.frames.get()

    async def close(self) -> None:
        if self.slow_close:
            await asyncio.sleep(0)
        self.closed = True


class StubSource(ProgressSource):
    """Progress source driven by hand; needs no event loop."""

    kind = ProgressSourceKind.SIMULATED

    def __init__(self):
        self.sink: Optional[Callable] = None
        self.upload_id: Optional[str] = None
        self.credential: Optional[str] = None
        self.starts = 0
        self.stops = 0

    @property
    def active(self) -> bool:
        return self.sink is not None

    def start(self, upload_id, sink, credential=None) -> None:
        self.upload_id = upload_id
        self.sink = sink
        self.credential = credential
        self.starts += 1

    def stop(self) -> None:
        self.sink = None
        self.stops += 1

    def emit(self, value) -> None:
        if self.sink is not None:
            self.sink(value)
