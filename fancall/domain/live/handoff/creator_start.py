"""Creator side of the queue-to-session handoff."""

from collections.abc import Callable

from loguru import logger

from fancall.app_config import get_app_environ_config
from fancall.domain.live.session.lifecycle import SessionLifecycle
from fancall.schemas import QueueEntry, SessionRole
from fancall.shared.deferred import Gate, PendingAction
from fancall.utils.app_errors import (
    AppError,
    HandoffDisabled,
    InvalidPhaseTransition,
    SessionStartError,
)

from .handoff_models import Notifier, SessionBackend
from .navigation import NavigationFlags, PageNavigator, session_route
from .readiness import check_fan_ready


class SessionStarter:
    """Starts a session for the fan at the front of the creator's queue.

    The creator never writes the session row: the backend's atomic creation
    operation re-validates readiness and creates it in one transaction, so two
    creators cannot claim the same fan. The local readiness check only saves a
    round trip.
    """

    def __init__(
        self,
        backend: SessionBackend,
        lifecycle: SessionLifecycle,
        navigator: PageNavigator,
        notifier: Notifier,
        flags: NavigationFlags,
        nav_delay: float | None = None,
        enabled: bool | None = None,
        route_base: str | None = None,
        on_success: Callable[[str], None] | None = None,
        on_error: Callable[[AppError], None] | None = None,
    ) -> None:
        cfg = get_app_environ_config()
        self._backend = backend
        self._lifecycle = lifecycle
        self._navigator = navigator
        self._notifier = notifier
        self._flags = flags
        self._nav_delay = nav_delay if nav_delay is not None else cfg.CREATOR_NAV_DELAY_SECONDS
        self._enabled = enabled if enabled is not None else cfg.SESSION_HANDOFF_ENABLED
        self._route_base = route_base
        self._on_success = on_success
        self._on_error = on_error
        self._nav_gate = Gate()

        self.is_processing = False
        self.last_error: AppError | None = None
        self.pending_navigation: PendingAction | None = None

    async def start_session(self, entry: QueueEntry) -> str | None:
        """Create a session for ``entry`` and redirect the creator into it.

        Returns:
            The new session id, or None if nothing was started
        """
        if self.is_processing:
            logger.debug("Session start already in progress, ignoring {}", entry.id)
            return None
        self.last_error = None

        if not self._enabled:
            self._fail(
                HandoffDisabled("Live sessions are not enabled. Please contact support."),
                title="Feature Not Enabled",
            )
            return None

        try:
            check_fan_ready(entry)
        except AppError as e:
            logger.info("Fan {} not ready ({}), session not started", entry.fan_id, entry.fan_state)
            self._fail(e, title="Cannot Start Session")
            return None

        self.is_processing = True
        try:
            logger.info("Starting session for queue entry {} (fan={})", entry.id, entry.fan_id)
            session_id = await self._backend.start_session(entry.id)
            if not session_id:
                raise SessionStartError("No session was created. Please try again.")
        except AppError as e:
            self._fail(e, title="Failed to Start Session")
            return None
        except Exception as e:
            logger.exception("Unexpected error starting session for queue entry {}", entry.id)
            error = SessionStartError("Could not start session. Please try again.")
            error.__cause__ = e
            self._fail(error, title="Failed to Start Session")
            return None
        finally:
            self.is_processing = False

        logger.info("Session {} created for queue entry {}", session_id, entry.id)
        self._enter_prep(session_id)

        self._notifier.notify("Session Starting", f"Connecting with {entry.display_name}...")
        if self._on_success is not None:
            try:
                self._on_success(session_id)
            except Exception:
                logger.exception("Session start success callback failed")

        url = session_route(session_id, SessionRole.CREATOR, base=self._route_base)
        # Set before the redirect is scheduled so unload handlers see it
        self._flags.suppress_queue_cleanup()

        def navigate() -> None:
            logger.info("Navigating creator to {}", url)
            self._navigator.assign(url)

        self.pending_navigation = self._nav_gate.defer(
            navigate, delay=self._nav_delay, name=f"creator-nav:{session_id}"
        )
        return session_id

    def cancel_navigation(self) -> None:
        if self.pending_navigation is not None:
            self.pending_navigation.cancel()

    def _enter_prep(self, session_id: str) -> None:
        try:
            self._lifecycle.enter_prep()
        except InvalidPhaseTransition:
            # The redirect gives the session page a fresh lifecycle anyway
            logger.warning(
                "Creator lifecycle in {} when session {} was created, not entering prep",
                self._lifecycle.phase,
                session_id,
            )

    def _fail(self, error: AppError, title: str) -> None:
        self.last_error = error
        logger.warning("{} {} msg={} caller={}", error.errcode, error.erresid, error.errmesg, error.caller_info)
        self._notifier.notify(title, error.errmesg, variant="destructive")
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.exception("Session start error callback failed")
