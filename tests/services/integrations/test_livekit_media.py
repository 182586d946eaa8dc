"""Tests for the LiveKit transport adapter with a mocked room."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from livekit import rtc

from fancall.services.integrations.livekit_media import (
    LivekitLocalStream,
    LivekitLocalTrack,
    LivekitTransport,
)
from fancall.utils.app_errors import TransportError


def make_room() -> MagicMock:
    room = MagicMock()
    room.name = "room-1"
    room.connect = AsyncMock()
    room.disconnect = AsyncMock()
    room.local_participant.publish_track = AsyncMock(return_value=MagicMock(sid="TR_audio"))
    room.local_participant.unpublish_track = AsyncMock()
    return room


class TestLocalTrack:
    async def test_stop_releases_audio_source_once(self):
        source = MagicMock()
        source.aclose = AsyncMock()
        track = LivekitLocalTrack("audio", MagicMock(), source)

        await track.stop()
        await track.stop()

        assert track.ready_state == "ended"
        assert track.id.startswith("tr_")
        source.aclose.assert_awaited_once()

    async def test_stop_without_async_close(self):
        """Video sources have nothing to close asynchronously."""
        track = LivekitLocalTrack("video", MagicMock(), MagicMock(spec=[]))

        await track.stop()

        assert track.ready_state == "ended"

    def test_track_source_by_kind(self):
        video = LivekitLocalTrack("video", MagicMock(), MagicMock())
        audio = LivekitLocalTrack("audio", MagicMock(), MagicMock())

        assert video.track_source == rtc.TrackSource.SOURCE_CAMERA
        assert audio.track_source == rtc.TrackSource.SOURCE_MICROPHONE

    def test_stream_ids(self):
        stream = LivekitLocalStream([])

        assert stream.id.startswith("ms_")
        assert stream.get_tracks() == []


class TestTransport:
    async def test_connect_publish_close(self):
        room = make_room()
        transport = LivekitTransport(room)
        track = LivekitLocalTrack("audio", MagicMock(), MagicMock())

        await transport.connect("token", url="wss://rtc.test")
        await transport.publish_track(track)
        await transport.close()
        await transport.close()

        room.connect.assert_awaited_once_with("wss://rtc.test", "token")
        published_track, options = room.local_participant.publish_track.call_args.args
        assert published_track is track.track
        assert options.source == rtc.TrackSource.SOURCE_MICROPHONE
        room.local_participant.unpublish_track.assert_awaited_once_with("TR_audio")
        room.disconnect.assert_awaited_once()
        assert transport.is_connected is False

    async def test_connect_failure_raises_transport_error(self):
        room = make_room()
        room.connect.side_effect = RuntimeError("bad token")
        transport = LivekitTransport(room)

        with pytest.raises(TransportError):
            await transport.connect("token", url="wss://rtc.test")

        assert transport.is_connected is False
