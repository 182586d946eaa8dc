"""LiveKit adapters for the media registry.

``LivekitDevices`` produces local camera/microphone tracks backed by
``rtc.VideoSource``/``rtc.AudioSource``; ``LivekitTransport`` wraps an
``rtc.Room`` as the peer-connection-like transport. Only the acquire, publish
and close calls are exposed.

Usage:
    devices = LivekitDevices()
    registry = MediaRegistry.create(devices, transport_factory=LivekitTransport)
    stream = await registry.initialize_media(SessionPhase.SESSION_JOINING)
    await registry.transport.connect(token=token)
"""

from __future__ import annotations

from livekit import rtc
from loguru import logger

from fancall.app_config import get_app_environ_config
from fancall.utils.app_errors import TransportError
from fancall.utils.idgen import new_stream_id, new_track_id


class LivekitLocalTrack:
    def __init__(
        self,
        kind: str,
        track: rtc.LocalVideoTrack | rtc.LocalAudioTrack,
        source: rtc.VideoSource | rtc.AudioSource,
    ) -> None:
        self.id = new_track_id()
        self.kind = kind
        self.track = track
        self.source = source
        self._ready_state = "live"

    @property
    def ready_state(self) -> str:
        return self._ready_state

    @property
    def track_source(self) -> rtc.TrackSource.ValueType:
        if self.kind == "video":
            return rtc.TrackSource.SOURCE_CAMERA
        return rtc.TrackSource.SOURCE_MICROPHONE

    async def stop(self) -> None:
        """End the track and release its capture source."""
        if self._ready_state == "ended":
            return
        self._ready_state = "ended"
        # AudioSource holds a native queue; VideoSource has no async close
        aclose = getattr(self.source, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.debug("Stopped local {} track {}", self.kind, self.id)


class LivekitLocalStream:
    def __init__(self, tracks: list[LivekitLocalTrack]) -> None:
        self.id = new_stream_id()
        self._tracks = tracks

    def get_tracks(self) -> list[LivekitLocalTrack]:
        return list(self._tracks)


class LivekitDevices:
    def __init__(
        self,
        width: int = 1280,
        height: int = 720,
        sample_rate: int = 48000,
        num_channels: int = 1,
    ) -> None:
        self._width = width
        self._height = height
        self._sample_rate = sample_rate
        self._num_channels = num_channels

    async def acquire(self, video: bool, audio: bool) -> LivekitLocalStream:
        tracks: list[LivekitLocalTrack] = []
        if video:
            video_source = rtc.VideoSource(self._width, self._height)
            video_track = rtc.LocalVideoTrack.create_video_track("camera", video_source)
            tracks.append(LivekitLocalTrack("video", video_track, video_source))
        if audio:
            audio_source = rtc.AudioSource(self._sample_rate, self._num_channels)
            audio_track = rtc.LocalAudioTrack.create_audio_track("microphone", audio_source)
            tracks.append(LivekitLocalTrack("audio", audio_track, audio_source))
        stream = LivekitLocalStream(tracks)
        logger.info("Acquired local stream {} (video={}, audio={})", stream.id, video, audio)
        return stream


class LivekitTransport:
    def __init__(self, room: rtc.Room | None = None) -> None:
        self._room = room if room is not None else rtc.Room()
        self._connected = False
        self._publication_sids: list[str] = []

    @property
    def room(self) -> rtc.Room:
        return self._room

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self, token: str, url: str | None = None) -> None:
        url = url or get_app_environ_config().LIVEKIT_URL
        if not url:
            raise TransportError("RTC provider URL must be configured.")
        try:
            await self._room.connect(url, token)
        except Exception as e:
            logger.warning("LiveKit connect failed: {}", e)
            raise TransportError("Could not connect to the call. Please try again.") from e
        self._connected = True
        logger.info("LiveKit transport connected to room {}", self._room.name)

    async def publish_track(self, track: LivekitLocalTrack) -> None:
        options = rtc.TrackPublishOptions()
        options.source = track.track_source
        publication = await self._room.local_participant.publish_track(track.track, options)
        self._publication_sids.append(publication.sid)
        logger.debug("Published {} track {} as {}", track.kind, track.id, publication.sid)

    async def close(self) -> None:
        if not self._connected:
            return
        sids, self._publication_sids = self._publication_sids, []
        for sid in sids:
            try:
                await self._room.local_participant.unpublish_track(sid)
            except Exception as e:
                logger.warning("Failed to unpublish track {}: {}", sid, e)
        self._connected = False
        await self._room.disconnect()
        logger.info("LiveKit transport closed")
