"""Media registry for a live session.

Records which camera, microphone and transport resources the local participant
holds, and serializes every acquisition and release through two single-slot
locks (``media-init`` and ``media-teardown``).

Phase flow:
    idle --initialize_media--> active --teardown_media--> ending --(released)--> idle

Teardown takes precedence over init: once a teardown has started, new inits
wait for it to finish and then acquire fresh devices. A release that hangs past
``guard_seconds`` is abandoned and the bookkeeping is force-reset to ``idle`` so
the next session is not blocked. After every release the registry checks for
tracks that are still live or a transport that is still connected and reports
them as a leak.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from loguru import logger

from fancall.app_config import get_app_environ_config
from fancall.schemas import MediaPhase, SessionPhase
from fancall.shared.inflight import InFlight
from fancall.utils.app_errors import (
    AcquisitionError,
    AppError,
    MediaInitBlocked,
    TransportError,
)

from .media_models import MediaDevices, MediaStream, MediaSummary, ReleaseCheck, Transport

TransportFactory = Callable[[], Transport | Awaitable[Transport]]
ForcedResetCallback = Callable[[MediaSummary], None]


def can_init_media(session_phase: SessionPhase, media_phase: MediaPhase) -> bool:
    """Media may be initialized only while preparing or joining, and never while ending."""
    return session_phase in SessionPhase.media_phases() and media_phase != MediaPhase.ENDING


class MediaRegistry:
    """Owned record of the local participant's media resources."""

    def __init__(
        self,
        devices: MediaDevices,
        transport_factory: TransportFactory | None = None,
        guard_seconds: float | None = None,
        on_forced_reset: ForcedResetCallback | None = None,
    ) -> None:
        cfg = get_app_environ_config()
        self._devices = devices
        self._transport_factory = transport_factory
        self._guard_seconds = (
            guard_seconds if guard_seconds is not None else cfg.MEDIA_TEARDOWN_GUARD_SECONDS
        )
        self._on_forced_reset = on_forced_reset

        self._init_lock: InFlight[MediaStream] = InFlight("media-init")
        self._end_lock: InFlight[None] = InFlight("media-teardown")

        self._phase = MediaPhase.IDLE
        self._stream: MediaStream | None = None
        self._transport: Transport | None = None
        self._preview_only: bool | None = None

        self.forced_resets = 0
        self.leaks_detected = 0

    @classmethod
    def create(
        cls,
        devices: MediaDevices,
        transport_factory: TransportFactory | None = None,
        guard_seconds: float | None = None,
        on_forced_reset: ForcedResetCallback | None = None,
    ) -> "MediaRegistry":
        registry = cls(
            devices,
            transport_factory=transport_factory,
            guard_seconds=guard_seconds,
            on_forced_reset=on_forced_reset,
        )
        logger.info("Media registry created (guard={}s)", registry._guard_seconds)
        return registry

    @property
    def phase(self) -> MediaPhase:
        return self._phase

    @property
    def stream(self) -> MediaStream | None:
        return self._stream

    @property
    def transport(self) -> Transport | None:
        return self._transport

    @property
    def preview_only(self) -> bool | None:
        return self._preview_only

    def _set_phase(self, phase: MediaPhase) -> None:
        if self._phase != phase:
            self._phase = phase
            logger.info("Media phase: {}", phase)

    # ==================== INIT ====================

    def can_init_media(self, session_phase: SessionPhase) -> bool:
        allowed = can_init_media(session_phase, self._phase)
        if not allowed:
            logger.warning(
                "Media initialization blocked - session phase: {}, media phase: {}",
                session_phase,
                self._phase,
            )
        return allowed

    async def initialize_media(
        self,
        session_phase: SessionPhase,
        preview_only: bool = False,
    ) -> MediaStream:
        """Acquire camera (and microphone unless ``preview_only``) for the session.

        Concurrent calls with the same ``preview_only`` share one acquisition and
        resolve to the same stream. A call made while a teardown is in progress
        waits for it and then acquires again.

        Raises:
            MediaInitBlocked: If the session phase or media phase forbids init
            AcquisitionError: If a device is unavailable or permission is denied
            TransportError: If the transport could not be constructed
        """
        while True:
            if self._end_lock.busy:
                logger.info("Media initialization waiting for teardown to finish")
                await self._end_lock.settle()
                continue
            if not self.can_init_media(session_phase):
                raise MediaInitBlocked(
                    f"Media cannot start right now (session {session_phase}, media {self._phase})."
                )
            if not self._init_lock.busy:
                break
            if self._init_lock.key == preview_only:
                return await self._init_lock.join()
            # A different request is in flight; let it finish, then re-evaluate
            await self._init_lock.settle()

        held = self._held_stream_for(preview_only)
        if held is not None:
            logger.debug("Media already active with stream {}, reusing", held.id)
            return held

        return await self._init_lock.run(lambda: self._acquire(preview_only), key=preview_only)

    def _held_stream_for(self, preview_only: bool) -> MediaStream | None:
        if self._phase != MediaPhase.ACTIVE or self._stream is None:
            return None
        if preview_only or not self._preview_only:
            return self._stream
        return None

    async def _acquire(self, preview_only: bool) -> MediaStream:
        if self._stream is not None:
            logger.info("Upgrading preview stream {} to full audio/video", self._stream.id)
            await self._stop_tracks(self._stream)
            self._stream = None
            self._preview_only = None
            self._set_phase(MediaPhase.IDLE)

        try:
            stream = await self._devices.acquire(video=True, audio=not preview_only)
        except AppError:
            raise
        except Exception as e:
            logger.warning("Media acquisition failed (preview_only={}): {}", preview_only, e)
            raise AcquisitionError(
                "Camera or microphone is unavailable. Check permissions and try again."
            ) from e

        transport: Transport | None = None
        if not preview_only and self._transport_factory is not None:
            try:
                created = self._transport_factory()
                transport = await created if inspect.isawaitable(created) else created
            except Exception as e:
                logger.warning("Transport construction failed: {}", e)
                await self._stop_tracks(stream)
                raise TransportError("Could not set up the call connection. Please try again.") from e

        self._stream = stream
        self._transport = transport
        self._preview_only = preview_only
        self._set_phase(MediaPhase.ACTIVE)
        logger.info(
            "Stream registered: {} ({} tracks, preview_only={})",
            stream.id,
            len(stream.get_tracks()),
            preview_only,
        )
        return stream

    # ==================== TEARDOWN ====================

    async def teardown_media(self) -> None:
        """Release every held resource. Concurrent calls collapse into one teardown."""
        if self._end_lock.busy:
            logger.debug("Teardown already in progress, joining")
            return await self._end_lock.join()
        # Taken before waiting on init so later inits queue behind this teardown
        await self._end_lock.run(self._teardown)

    async def _teardown(self) -> None:
        while self._init_lock.busy:
            logger.info("Teardown waiting for in-flight media initialization")
            await self._init_lock.settle()

        if self._phase == MediaPhase.IDLE and self._stream is None and self._transport is None:
            logger.debug("Teardown skipped, no media held")
            return

        self._set_phase(MediaPhase.ENDING)
        stream, transport = self._stream, self._transport
        before = self.media_summary("teardown:start")
        try:
            await asyncio.wait_for(self._release(stream, transport), timeout=self._guard_seconds)
        except asyncio.TimeoutError:
            check = self._check_released(stream, transport)
            self._report_forced_reset(before.model_copy(update={"release_check": check}))
        else:
            self._check_released(stream, transport)
        finally:
            self._clear()
        logger.info("Teardown complete")

    async def _release(self, stream: MediaStream | None, transport: Transport | None) -> None:
        # Tracks first: device lights go off even if the transport close hangs
        if stream is not None:
            await self._stop_tracks(stream)
        if transport is not None:
            try:
                await transport.close()
            except Exception as e:
                logger.warning("Failed to close transport: {}", e)

    async def _stop_tracks(self, stream: MediaStream) -> None:
        for track in list(stream.get_tracks()):
            try:
                result = track.stop()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Failed to stop {} track {}: {}", track.kind, track.id, e)

    def _check_released(
        self, stream: MediaStream | None, transport: Transport | None
    ) -> ReleaseCheck:
        tracks = list(stream.get_tracks()) if stream is not None else []
        check = ReleaseCheck(
            live_tracks=[t.id for t in tracks if t.ready_state == "live"],
            transport_connected=transport is not None and transport.is_connected,
        )
        if check.leaked:
            self.leaks_detected += 1
            logger.warning(
                "[LEAK] Media still held after teardown: live_tracks={} transport_connected={}",
                check.live_tracks,
                check.transport_connected,
            )
        return check

    def _clear(self) -> None:
        self._stream = None
        self._transport = None
        self._preview_only = None
        self._set_phase(MediaPhase.IDLE)

    def _report_forced_reset(self, summary: MediaSummary) -> None:
        self.forced_resets += 1
        logger.error(
            "Media teardown exceeded {}s guard, forcing idle (stream={}, transport={}, forced_resets={})",
            self._guard_seconds,
            summary.stream_id,
            summary.has_transport,
            self.forced_resets,
        )
        if self._on_forced_reset is not None:
            try:
                self._on_forced_reset(summary)
            except Exception:
                logger.exception("Forced-reset callback failed")

    async def reset(self) -> None:
        """Emergency cleanup: best-effort release and unconditional return to idle."""
        if self._phase == MediaPhase.IDLE and self._stream is None and self._transport is None:
            logger.debug("Emergency cleanup skipped, no media held")
            return
        logger.warning("Media emergency cleanup triggered")
        stream, transport = self._stream, self._transport
        try:
            await asyncio.wait_for(self._release(stream, transport), timeout=self._guard_seconds)
        except asyncio.TimeoutError:
            logger.error("Emergency cleanup exceeded {}s guard", self._guard_seconds)
        finally:
            self._check_released(stream, transport)
            self._clear()

    # ==================== DIAGNOSTICS ====================

    def media_summary(self, tag: str) -> MediaSummary:
        tracks = list(self._stream.get_tracks()) if self._stream is not None else []
        summary = MediaSummary(
            tag=tag,
            phase=self._phase,
            track_count=len(tracks),
            live_track_count=sum(1 for t in tracks if t.ready_state == "live"),
            stream_id=self._stream.id if self._stream is not None else None,
            preview_only=self._preview_only,
            has_transport=self._transport is not None,
            init_in_flight=self._init_lock.busy,
            end_in_flight=self._end_lock.busy,
            forced_resets=self.forced_resets,
        )
        logger.debug("Media summary: {}", summary.model_dump())
        return summary
