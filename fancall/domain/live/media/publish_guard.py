"""Publish a local stream's tracks exactly once per stream identity."""

from collections.abc import Callable

from loguru import logger

from fancall.shared.inflight import InFlight
from fancall.utils.app_errors import TransportError

from .media_models import MediaStream, Transport

TransportErrorCallback = Callable[[TransportError], None]


def stream_identity(stream: MediaStream) -> str:
    """Key derived from the stream id plus each track's id and ready state."""
    tracks = ",".join(f"{track.id}:{track.ready_state}" for track in stream.get_tracks())
    return f"{stream.id}|{tracks}"


class PublishGuard:
    """Idempotent track publication over a connected transport.

    Rapid re-renders, reconnect storms and redundant call sites may all ask to
    publish the same stream; only the first request for a given identity
    reaches the transport. A new identity resets the guard.
    """

    def __init__(
        self,
        transport: Transport,
        on_error: TransportErrorCallback | None = None,
    ) -> None:
        self._transport = transport
        self._on_error = on_error
        self._inflight: InFlight[bool] = InFlight("publish")
        self._identity: str | None = None
        self._published = False
        self._published_track_ids: set[str] = set()

    @property
    def published_identity(self) -> str | None:
        return self._identity if self._published else None

    def reset(self) -> None:
        self._identity = None
        self._published = False
        self._published_track_ids.clear()

    async def publish(self, stream: MediaStream) -> bool:
        """Publish ``stream``'s live tracks unless this identity is already handled.

        Returns:
            True if this call published the tracks, False if it was a no-op or failed
        """
        identity = stream_identity(stream)

        if self._published and identity == self._identity:
            logger.debug("Stream {} already published, skipping", stream.id)
            return False

        if self._inflight.busy:
            if self._inflight.key == identity:
                logger.debug("Publish of stream {} already in flight, skipping", stream.id)
                return False
            await self._inflight.settle()
            return await self.publish(stream)

        if not self._transport.is_connected:
            logger.debug("Transport not connected, deferring publish of stream {}", stream.id)
            return False

        if identity != self._identity:
            if self._identity is not None:
                logger.info("Stream identity changed, resetting publish guard")
            self._identity = identity
            self._published = False
            self._published_track_ids.clear()

        return await self._inflight.run(lambda: self._publish(stream, identity), key=identity)

    async def _publish(self, stream: MediaStream, identity: str) -> bool:
        for track in stream.get_tracks():
            if track.ready_state != "live" or track.id in self._published_track_ids:
                continue
            try:
                await self._transport.publish_track(track)
            except Exception as e:
                error = TransportError("Could not share your camera or microphone. Please try again.")
                error.__cause__ = e
                logger.warning("Failed to publish {} track {}: {}", track.kind, track.id, e)
                self._report(error)
                return False
            self._published_track_ids.add(track.id)

        if self._identity == identity:
            self._published = True
        logger.info("Published {} tracks for stream {}", len(self._published_track_ids), stream.id)
        return True

    def _report(self, error: TransportError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("Publish error callback failed")
