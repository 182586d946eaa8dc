"""Fan side of the queue-to-session handoff.

Invites arrive on an at-least-once realtime feed and, right after the
subscription becomes active, from a one-time query for any invite that was
created before the subscription existed. Both paths feed :meth:`handle_invite`,
which records the invite id before doing anything else, so each invite's side
effects (notification, acceptance, navigation) happen at most once no matter
which path sees it first or how often it is delivered.
"""

import asyncio

from loguru import logger

from fancall.app_config import get_app_environ_config
from fancall.schemas import InviteStatus, SessionInvite, SessionRole
from fancall.shared.deferred import PageVisibility, PendingAction

from .handoff_models import (
    InviteFeed,
    Notifier,
    SessionBackend,
    Subscription,
    SubscriptionStatus,
)
from .navigation import NavigationFlags, PageNavigator, session_route


class InviteConsumer:
    """Consumes session invites for one fan identity."""

    def __init__(
        self,
        invitee_id: str,
        feed: InviteFeed,
        backend: SessionBackend,
        navigator: PageNavigator,
        notifier: Notifier,
        flags: NavigationFlags,
        visibility: PageVisibility,
        nav_delay: float | None = None,
        idle_warning: float | None = None,
        enabled: bool | None = None,
        route_base: str | None = None,
    ) -> None:
        cfg = get_app_environ_config()
        self.invitee_id = invitee_id
        self._feed = feed
        self._backend = backend
        self._navigator = navigator
        self._notifier = notifier
        self._flags = flags
        self._visibility = visibility
        self._nav_delay = nav_delay if nav_delay is not None else cfg.FAN_NAV_DELAY_SECONDS
        self._idle_warning = (
            idle_warning if idle_warning is not None else cfg.INVITE_IDLE_WARNING_SECONDS
        )
        self._enabled = enabled if enabled is not None else cfg.SESSION_HANDOFF_ENABLED
        self._route_base = route_base

        self._processed: set[str] = set()
        self._subscription: Subscription | None = None
        self._pending: list[PendingAction] = []
        self._reconcile_task: asyncio.Task | None = None
        self._idle_timer: asyncio.TimerHandle | None = None

        self.status: SubscriptionStatus | None = None

    @property
    def processed_ids(self) -> frozenset[str]:
        return frozenset(self._processed)

    @property
    def pending_navigations(self) -> list[PendingAction]:
        return list(self._pending)

    @property
    def reconcile_task(self) -> asyncio.Task | None:
        return self._reconcile_task

    async def start(self) -> None:
        """Subscribe to the invite feed. Safe to call again after :meth:`stop`."""
        if not self._enabled:
            logger.info("Session handoff disabled, not subscribing to invites")
            return
        if self._subscription is not None:
            logger.debug("Invite subscription for {} already active", self.invitee_id)
            return

        logger.info("Initializing invite subscription for {}", self.invitee_id)
        self._subscription = await self._feed.subscribe(self._on_invite, self._on_status)
        if self._idle_warning > 0:
            self._idle_timer = asyncio.get_running_loop().call_later(
                self._idle_warning, self._warn_idle
            )

    async def stop(self) -> None:
        """Unsubscribe and drop anything still waiting (deferred navigation included)."""
        self._cancel_idle_timer()
        for pending in self._pending:
            pending.cancel()
        self._pending.clear()
        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_task.cancel()
        self._reconcile_task = None

        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            logger.info("Cleaning up invite subscription for {}", self.invitee_id)
            await subscription.unsubscribe()

    def _on_status(self, status: SubscriptionStatus, error: Exception | None = None) -> None:
        self.status = status
        logger.info("Invite subscription status for {}: {}", self.invitee_id, status)
        if status == SubscriptionStatus.SUBSCRIBED:
            self._reconcile_task = asyncio.create_task(
                self.reconcile(), name=f"invite-reconcile:{self.invitee_id}"
            )
        elif status in {SubscriptionStatus.CHANNEL_ERROR, SubscriptionStatus.TIMED_OUT}:
            # No retry loop: a remount resubscribes and reconciles again
            logger.error(
                "Invite subscription for {} failed ({}): {}", self.invitee_id, status, error
            )

    async def _on_invite(self, invite: SessionInvite) -> None:
        if invite.status != InviteStatus.PENDING:
            logger.debug("Ignoring invite {} with status {}", invite.id, invite.status)
            return
        await self.handle_invite(invite)

    async def reconcile(self) -> None:
        """Cold start: pick up an invite that was created before the subscription."""
        try:
            invite = await self._backend.fetch_pending_invite(self.invitee_id)
        except Exception as e:
            logger.warning("Cold-start invite query failed for {}: {}", self.invitee_id, e)
            return
        if invite is None:
            logger.debug("No pending invite for {} at cold start", self.invitee_id)
            return
        logger.info("Cold start found pending invite {}", invite.id)
        await self.handle_invite(invite)

    async def handle_invite(self, invite: SessionInvite) -> bool:
        """Process ``invite`` once.

        Returns:
            True if this call processed the invite, False if it was ignored
        """
        if invite.invitee_id != self.invitee_id:
            logger.warning("Invite {} is for {}, not {}", invite.id, invite.invitee_id, self.invitee_id)
            return False
        if invite.id in self._processed:
            logger.debug("Invite {} already processed", invite.id)
            return False
        # Claim before the first await so a concurrent delivery sees it
        self._processed.add(invite.id)

        if invite.is_expired():
            logger.info("Invite {} expired at {}, skipping", invite.id, invite.expires_at)
            return False

        logger.info("Received invite {} for session {}", invite.id, invite.session_id)
        self._cancel_idle_timer()
        self._notifier.notify(
            f"{invite.creator_name} is ready!", "You're next in line. Connecting now..."
        )

        try:
            await self._backend.mark_invite_accepted(invite.id)
        except Exception as e:
            logger.warning("Failed to mark invite {} accepted: {}", invite.id, e)

        url = session_route(invite.session_id, SessionRole.USER, base=self._route_base)

        def navigate() -> None:
            logger.info("Navigating fan to session {}", invite.session_id)
            self._flags.suppress_queue_cleanup()
            self._navigator.replace(url)

        if not self._visibility.visible:
            logger.info("Tab hidden, deferring navigation to session {}", invite.session_id)
        self._pending.append(
            self._visibility.defer(navigate, delay=self._nav_delay, name=f"fan-nav:{invite.id}")
        )
        return True

    def _warn_idle(self) -> None:
        self._idle_timer = None
        logger.warning(
            "No invite received for {} after {}s (status={})",
            self.invitee_id,
            self._idle_warning,
            self.status,
        )

    def _cancel_idle_timer(self) -> None:
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None
