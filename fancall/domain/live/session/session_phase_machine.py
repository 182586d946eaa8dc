"""Session phase machine for a single local participant."""

from fancall.schemas import LiveEvent, SessionPhase


class SessionPhaseMachine:
    """State machine for managing participant phase transitions.

    Phase flow with triggers:
    - OFFLINE -> DISCOVERABLE (go live)
    - DISCOVERABLE -> SESSION_PREP (handoff created a session) | OFFLINE (go offline)
    - SESSION_PREP -> SESSION_JOINING (explicit join) | TEARDOWN
    - SESSION_JOINING -> SESSION_ACTIVE (media confirmed flowing) | TEARDOWN
    - SESSION_ACTIVE -> TEARDOWN (call ended by either side, or error)
    - TEARDOWN -> DISCOVERABLE (ready for next caller) | OFFLINE

    Every exit from a session phase passes through TEARDOWN, which is the only
    phase from which session-scoped resources are guaranteed released. RESET
    from a session phase therefore lands on TEARDOWN, not OFFLINE.
    """

    TRANSITIONS: dict[SessionPhase, dict[LiveEvent, SessionPhase]] = {
        SessionPhase.OFFLINE: {
            LiveEvent.GO_LIVE: SessionPhase.DISCOVERABLE,
            LiveEvent.RESET: SessionPhase.OFFLINE,
        },
        SessionPhase.DISCOVERABLE: {
            LiveEvent.ENTER_PREP: SessionPhase.SESSION_PREP,
            LiveEvent.GO_OFFLINE: SessionPhase.OFFLINE,
            LiveEvent.RESET: SessionPhase.OFFLINE,
        },
        SessionPhase.SESSION_PREP: {
            LiveEvent.ENTER_JOINING: SessionPhase.SESSION_JOINING,
            LiveEvent.START_FAILED: SessionPhase.TEARDOWN,
            LiveEvent.END_SESSION: SessionPhase.TEARDOWN,
            LiveEvent.RESET: SessionPhase.TEARDOWN,
        },
        SessionPhase.SESSION_JOINING: {
            LiveEvent.SESSION_STARTED: SessionPhase.SESSION_ACTIVE,
            LiveEvent.START_FAILED: SessionPhase.TEARDOWN,
            LiveEvent.END_SESSION: SessionPhase.TEARDOWN,
            LiveEvent.RESET: SessionPhase.TEARDOWN,
        },
        SessionPhase.SESSION_ACTIVE: {
            LiveEvent.END_SESSION: SessionPhase.TEARDOWN,
            LiveEvent.RESET: SessionPhase.TEARDOWN,
        },
        SessionPhase.TEARDOWN: {
            LiveEvent.TEARDOWN_COMPLETE: SessionPhase.DISCOVERABLE,
            LiveEvent.GO_OFFLINE: SessionPhase.OFFLINE,
            LiveEvent.RESET: SessionPhase.OFFLINE,
        },
    }

    @classmethod
    def next_phase(cls, current: SessionPhase, event: LiveEvent) -> SessionPhase | None:
        """Target phase for ``event``, or None if the event is not valid here."""
        return cls.TRANSITIONS.get(current, {}).get(event)

    @classmethod
    def can_transition(cls, current: SessionPhase, event: LiveEvent) -> bool:
        return cls.next_phase(current, event) is not None

    @classmethod
    def get_valid_events(cls, phase: SessionPhase) -> set[LiveEvent]:
        return set(cls.TRANSITIONS.get(phase, {}))

    @classmethod
    def is_session_phase(cls, phase: SessionPhase) -> bool:
        return phase in SessionPhase.session_phases()


def transition(current: SessionPhase, event: LiveEvent) -> SessionPhase:
    """Pure transition function. Invalid events leave the phase unchanged."""
    return SessionPhaseMachine.next_phase(current, event) or current


def is_transitioning(phase: SessionPhase) -> bool:
    return phase in {
        SessionPhase.SESSION_PREP,
        SessionPhase.SESSION_JOINING,
        SessionPhase.TEARDOWN,
    }
