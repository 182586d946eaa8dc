"""Collaborator protocols for the queue-to-session handoff."""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

from loguru import logger

from fancall.schemas import SessionInvite


class SubscriptionStatus(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"

    def __str__(self) -> str:
        return self.value


InviteCallback = Callable[[SessionInvite], Awaitable[None]]
StatusCallback = Callable[[SubscriptionStatus, Exception | None], None]


class SessionBackend(Protocol):
    async def start_session(self, queue_entry_id: str) -> str:
        """Atomically re-validate fan readiness and create the session. Returns its id.

        Raises:
            PreconditionError: If the server reports fan_not_ready
            SessionStartError: For any other failure
        """
        ...

    async def fetch_pending_invite(self, invitee_id: str) -> SessionInvite | None: ...

    async def mark_invite_accepted(self, invite_id: str) -> None: ...


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


class InviteFeed(Protocol):
    """At-least-once realtime feed of invite creations for one invitee."""

    async def subscribe(
        self, on_invite: InviteCallback, on_status: StatusCallback
    ) -> Subscription: ...


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: str = "default") -> None: ...


class LogNotifier:
    """Notifier that only writes to the log."""

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        if variant == "destructive":
            logger.warning("[notify] {}: {}", title, description)
        else:
            logger.info("[notify] {}: {}", title, description)
