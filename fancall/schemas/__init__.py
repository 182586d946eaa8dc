"""Records and enums shared across the live-session coordinator."""

from .live_phase import LiveEvent, MediaPhase, SessionPhase
from .queue_entry import FanState, QueueEntry
from .session import Session, SessionRole, SessionStatus
from .session_invite import InviteStatus, SessionInvite

__all__ = [
    "FanState",
    "InviteStatus",
    "LiveEvent",
    "MediaPhase",
    "QueueEntry",
    "Session",
    "SessionInvite",
    "SessionPhase",
    "SessionRole",
    "SessionStatus",
]
