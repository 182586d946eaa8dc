"""Per-participant session lifecycle.

Drives :class:`SessionPhaseMachine` and gates media operations on the current
phase. Whatever path leaves a session (normal end, failed start, reset or an
intercepted page exit), the media registry is torn down before the participant
is allowed back into a non-session phase.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from fancall.domain.live.media.media_models import MediaStream
from fancall.domain.live.media.media_registry import MediaRegistry
from fancall.schemas import LiveEvent, MediaPhase, SessionPhase
from fancall.shared.inflight import InFlight
from fancall.utils.app_errors import InvalidPhaseTransition

from .session_phase_machine import SessionPhaseMachine

if TYPE_CHECKING:
    from fancall.services.presence import PresenceHeartbeat

PhaseListener = Callable[[SessionPhase, SessionPhase, LiveEvent], None]

_ACTIVE_SESSION_PHASES = {
    SessionPhase.SESSION_PREP,
    SessionPhase.SESSION_JOINING,
    SessionPhase.SESSION_ACTIVE,
}


class SessionLifecycle:
    """Phase tracker for one local participant."""

    def __init__(
        self,
        registry: MediaRegistry,
        presence: "PresenceHeartbeat | None" = None,
        participant_id: str | None = None,
    ) -> None:
        self._registry = registry
        self._presence = presence
        self.participant_id = participant_id
        self._phase = SessionPhase.OFFLINE
        self._media_confirmed = False
        self._listeners: list[PhaseListener] = []
        self._teardown: InFlight[None] = InFlight("session-teardown")

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def registry(self) -> MediaRegistry:
        return self._registry

    @property
    def is_live(self) -> bool:
        return self._phase == SessionPhase.SESSION_ACTIVE

    def subscribe(self, listener: PhaseListener) -> Callable[[], None]:
        """Register a phase listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, event: LiveEvent) -> SessionPhase:
        target = SessionPhaseMachine.next_phase(self._phase, event)
        if target is None:
            raise InvalidPhaseTransition(f"Invalid phase transition: {self._phase} on {event}")

        previous = self._phase
        self._phase = target
        logger.info(
            "Participant {} phase {} -> {} ({})", self.participant_id, previous, target, event
        )
        for listener in list(self._listeners):
            try:
                listener(previous, target, event)
            except Exception:
                logger.exception("Phase listener failed on {} -> {}", previous, target)
        return target

    # ==================== DISCOVERY ====================

    async def go_live(self) -> None:
        if self._phase == SessionPhase.DISCOVERABLE:
            logger.info("Participant {} already discoverable, skipping", self.participant_id)
            return
        self._apply(LiveEvent.GO_LIVE)
        if self._presence is not None:
            await self._presence.start_heartbeat(True)

    async def go_offline(self) -> None:
        if self._phase == SessionPhase.OFFLINE:
            return
        if self._phase in _ACTIVE_SESSION_PHASES:
            await self.end_session(stay_discoverable=False)
            return
        if self._phase == SessionPhase.TEARDOWN:
            await self._teardown.settle()
            if self._phase == SessionPhase.OFFLINE:
                return
            if self._phase == SessionPhase.TEARDOWN:
                await self._run_teardown(LiveEvent.GO_OFFLINE)
                return

        self._apply(LiveEvent.GO_OFFLINE)
        await self._stop_presence()

    # ==================== SESSION ====================

    def enter_prep(self) -> None:
        """A session was created for this participant; media may now be prepared."""
        self._apply(LiveEvent.ENTER_PREP)
        self._media_confirmed = False

    async def prepare_media(self, preview_only: bool = True) -> MediaStream:
        """Initialize media for the current phase (preview by default)."""
        stream = await self._registry.initialize_media(self._phase, preview_only=preview_only)
        self._media_confirmed = True
        return stream

    async def join(self) -> MediaStream:
        """Explicit join: move to SESSION_JOINING and acquire full audio/video.

        Media failures leave the participant in SESSION_JOINING so the join can be
        retried with :meth:`prepare_media`, or abandoned with :meth:`start_failed`.
        """
        self._apply(LiveEvent.ENTER_JOINING)
        return await self.prepare_media(preview_only=False)

    def confirm_active(self) -> None:
        """Media is confirmed flowing; the call is active."""
        if self._phase == SessionPhase.SESSION_ACTIVE:
            return
        if (
            not self._media_confirmed
            or self._registry.phase != MediaPhase.ACTIVE
            or self._registry.stream is None
        ):
            raise InvalidPhaseTransition("Media must be initialized before the session is active.")
        self._apply(LiveEvent.SESSION_STARTED)

    async def start_failed(self) -> None:
        """Abandon a session that never became active and return to discovery."""
        self._apply(LiveEvent.START_FAILED)
        await self._run_teardown(LiveEvent.TEARDOWN_COMPLETE)

    async def end_session(self, stay_discoverable: bool = True) -> None:
        """End the call (either side hung up, or an error). Idempotent while tearing down."""
        if self._phase == SessionPhase.TEARDOWN and self._teardown.busy:
            return await self._teardown.join()
        self._apply(LiveEvent.END_SESSION)
        await self._run_teardown(
            LiveEvent.TEARDOWN_COMPLETE if stay_discoverable else LiveEvent.GO_OFFLINE
        )

    async def reset(self) -> None:
        """Return to OFFLINE from anywhere, releasing session resources on the way."""
        if self._phase in _ACTIVE_SESSION_PHASES:
            self._apply(LiveEvent.RESET)
            await self._run_teardown(LiveEvent.RESET)
        elif self._phase == SessionPhase.TEARDOWN:
            await self._teardown.settle()
            if self._phase == SessionPhase.TEARDOWN:
                await self._run_teardown(LiveEvent.RESET)
            elif self._phase != SessionPhase.OFFLINE:
                self._apply(LiveEvent.RESET)
        else:
            self._apply(LiveEvent.RESET)

        if self._presence is not None:
            self._presence.cleanup()

    async def _run_teardown(self, exit_event: LiveEvent) -> None:
        await self._teardown.run(lambda: self._teardown_and_leave(exit_event), key=exit_event)

    async def _teardown_and_leave(self, exit_event: LiveEvent) -> None:
        # Media release comes first; if it raises, the phase stays TEARDOWN
        await self._registry.teardown_media()
        self._media_confirmed = False
        self._apply(exit_event)
        if exit_event == LiveEvent.GO_OFFLINE:
            await self._stop_presence()

    async def _stop_presence(self) -> None:
        if self._presence is not None:
            await self._presence.stop_heartbeat()

    # ==================== PAGE EXIT GUARD ====================

    def needs_leave_confirmation(self) -> bool:
        """Back-navigation or tab close must be confirmed while a call is active."""
        return self._phase == SessionPhase.SESSION_ACTIVE

    async def handle_abnormal_exit(self) -> None:
        """The page is going away without an explicit end; release everything."""
        logger.warning(
            "Abnormal exit for participant {} in phase {}", self.participant_id, self._phase
        )
        await self.go_offline()
