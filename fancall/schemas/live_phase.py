"""Participant-local lifecycle enums."""

from enum import Enum


class SessionPhase(str, Enum):
    """Live-session lifecycle phases of one local participant.

    OFFLINE → DISCOVERABLE → SESSION_PREP → SESSION_JOINING → SESSION_ACTIVE → TEARDOWN
                                   ↓               ↓                ↓
                                TEARDOWN        TEARDOWN         TEARDOWN → DISCOVERABLE | OFFLINE

    Phase Descriptions:
    - OFFLINE: Not discoverable. Initial phase.
    - DISCOVERABLE: Visible in discovery, a queue can form.
    - SESSION_PREP: A session was created for this participant; local preview may start.
    - SESSION_JOINING: Explicit join; upgrade to two-way audio/video and transport.
    - SESSION_ACTIVE: Media confirmed flowing.
    - TEARDOWN: Call ended by either side or on error; media is released here.
    """

    OFFLINE = "OFFLINE"
    DISCOVERABLE = "DISCOVERABLE"
    SESSION_PREP = "SESSION_PREP"
    SESSION_JOINING = "SESSION_JOINING"
    SESSION_ACTIVE = "SESSION_ACTIVE"
    TEARDOWN = "TEARDOWN"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def session_phases(cls) -> list["SessionPhase"]:
        """Phases during which session-scoped resources may be held."""
        return [
            SessionPhase.SESSION_PREP,
            SessionPhase.SESSION_JOINING,
            SessionPhase.SESSION_ACTIVE,
            SessionPhase.TEARDOWN,
        ]

    @classmethod
    def media_phases(cls) -> list["SessionPhase"]:
        """Phases during which media may be initialized."""
        return [SessionPhase.SESSION_PREP, SessionPhase.SESSION_JOINING]


class MediaPhase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDING = "ending"

    def __str__(self) -> str:
        return self.value


class LiveEvent(str, Enum):
    GO_LIVE = "GO_LIVE"
    ENTER_PREP = "ENTER_PREP"
    ENTER_JOINING = "ENTER_JOINING"
    SESSION_STARTED = "SESSION_STARTED"
    START_FAILED = "START_FAILED"
    END_SESSION = "END_SESSION"
    TEARDOWN_COMPLETE = "TEARDOWN_COMPLETE"
    GO_OFFLINE = "GO_OFFLINE"
    RESET = "RESET"

    def __str__(self) -> str:
        return self.value


__all__ = ["LiveEvent", "MediaPhase", "SessionPhase"]
