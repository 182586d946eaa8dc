"""Page-level navigation into a session.

Accepting a session always leaves the current page with a full redirect, never
an in-app route change, so the session page starts with a fresh media registry.
"""

from dataclasses import dataclass
from typing import Protocol
from urllib.parse import quote, urlencode

from loguru import logger

from fancall.app_config import get_app_environ_config
from fancall.schemas import SessionRole


class PageNavigator(Protocol):
    def assign(self, url: str) -> None:
        """Full page load of ``url``, keeping the current page in history."""
        ...

    def replace(self, url: str) -> None:
        """Full page load of ``url``, replacing the current history entry."""
        ...


def session_route(session_id: str, role: SessionRole | str, base: str | None = None) -> str:
    base = (base or get_app_environ_config().SESSION_ROUTE_BASE).rstrip("/")
    return f"{base}/{quote(session_id, safe='')}?{urlencode({'role': str(role)})}"


@dataclass
class NavigationFlags:
    """Page-wide flags read by unload cleanup handlers."""

    skip_queue_cleanup_on_session_nav: bool = False

    def suppress_queue_cleanup(self) -> None:
        self.skip_queue_cleanup_on_session_nav = True
        logger.debug("Queue cleanup suppressed for session navigation")

    def should_run_queue_cleanup(self) -> bool:
        """Unload handlers must not delete queue/session state during a session redirect."""
        return not self.skip_queue_cleanup_on_session_nav

    def clear(self) -> None:
        self.skip_queue_cleanup_on_session_nav = False
