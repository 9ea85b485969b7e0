"""Tests for the realtime progress channel."""

import pytest

from media_upload.upload.arbiter import ProgressChannelArbiter
from media_upload.upload.realtime import RealtimeProgressChannel, SUBSCRIBE_EVENT
from tests.fakes import FakePushConnection, StubSource, progress_frame, settle

URL = "wss://media.test/ws/uploads"


@pytest.fixture
def connection():
    return FakePushConnection()


@pytest.fixture
def channel(connection):
    return RealtimeProgressChannel(URL, connection_factory=lambda: connection)


class TestRealtimeProgressChannel:
    """Tests for RealtimeProgressChannel."""

    @pytest.mark.asyncio
    async def test_subscribes_with_upload_id(self, channel, connection):
        channel.start("abc", lambda event: None, "token-1")
        await settle()

        assert channel.connected is True
        assert connection.url == URL
        assert connection.credential == "token-1"
        assert connection.sent == [{"event": SUBSCRIBE_EVENT, "data": {"uploadId": "abc"}}]
        channel.stop()

    @pytest.mark.asyncio
    async def test_forwards_matching_events(self, channel, connection):
        events = []
        channel.start("abc", events.append)
        await settle()

        connection.frames.put_nowait(progress_frame("abc", 42.0, message="Processing"))
        await settle()

        assert len(events) == 1
        assert events[0].upload_id == "abc"
        assert events[0].progress == 42.0
        assert events[0].message == "Processing"
        channel.stop()

    @pytest.mark.asyncio
    async def test_discards_other_upload_ids(self, channel, connection):
        events = []
        channel.start("abc", events.append)
        await settle()

        connection.frames.put_nowait(progress_frame("someone-else", 90.0))
        await settle()

        assert events == []
        assert channel.discarded == 1
        channel.stop()

    @pytest.mark.asyncio
    async def test_ignores_other_events_and_malformed_frames(self, channel):
        events = []
        channel.start("abc", events.append)

        assert channel.dispatch({"event": "chat-message", "data": {"uploadId": "abc"}}) is False
        assert channel.dispatch({"event": "upload-progress", "data": {"progress": 10}}) is False
        assert events == []
        channel.stop()

    @pytest.mark.asyncio
    async def test_disconnect_ends_reader(self, channel, connection):
        channel.start("abc", lambda event: None)
        await settle()

        connection.frames.put_nowait(None)
        await settle()

        assert channel.connected is False
        assert connection.closed is True

    @pytest.mark.asyncio
    async def test_connect_failure_degrades_quietly(self):
        """An unreachable push service is logged and otherwise ignored."""
        connection = FakePushConnection(fail_connect=True)
        channel = RealtimeProgressChannel(URL, connection_factory=lambda: connection)

        channel.start("abc", lambda event: None)
        await settle()

        assert channel.connected is False
        assert connection.closed is True
        assert connection.sent == []
        channel.stop()

    @pytest.mark.asyncio
    async def test_stop_closes_connection(self, channel, connection):
        channel.start("abc", lambda event: None)
        await settle()

        channel.stop()
        channel.stop()
        await settle()

        assert channel.active is False
        assert connection.closed is True

    def test_dispatch_before_start(self, channel):
        assert channel.dispatch(progress_frame("abc", 10.0)) is False


class TestTerminalEventsCloseConnection:
    """Terminal events close the connection from inside the reader task."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stage", ["complete", "error", "rejected"])
    async def test_terminal_stage_finishes_close(self, stage):
        connection = FakePushConnection(slow_close=True)
        channel = RealtimeProgressChannel(URL, connection_factory=lambda: connection)
        arbiter = ProgressChannelArbiter(StubSource(), channel)
        updates = []

        arbiter.open("u1", updates.append, "tok")
        await settle()
        connection.frames.put_nowait(progress_frame("u1", 50.0, stage))
        await settle(50)

        assert updates
        assert arbiter.is_open is False
        assert channel.active is False
        assert connection.closed is True

    @pytest.mark.asyncio
    async def test_external_close_still_closes(self):
        connection = FakePushConnection(slow_close=True)
        channel = RealtimeProgressChannel(URL, connection_factory=lambda: connection)
        arbiter = ProgressChannelArbiter(StubSource(), channel)

        arbiter.open("u1", lambda update: None, "tok")
        await settle()
        arbiter.close()
        await settle(50)

        assert connection.closed is True
