"""Owned per-page live context.

Media registry, presence heartbeat and lifecycle are explicit instances created
together and handed to whoever needs them, instead of module-level singletons.
A page-level redirect into a session builds a new context.
"""

from dataclasses import dataclass, field

from loguru import logger

from fancall.domain.live.handoff.navigation import NavigationFlags
from fancall.domain.live.media.media_models import MediaDevices
from fancall.domain.live.media.media_registry import (
    ForcedResetCallback,
    MediaRegistry,
    TransportFactory,
)
from fancall.domain.live.session.lifecycle import SessionLifecycle
from fancall.services.presence import PresenceHeartbeat, PresenceSender
from fancall.shared.deferred import PageVisibility


@dataclass
class LiveContext:
    registry: MediaRegistry
    lifecycle: SessionLifecycle
    presence: PresenceHeartbeat | None = None
    visibility: PageVisibility = field(default_factory=PageVisibility)
    flags: NavigationFlags = field(default_factory=NavigationFlags)


def create_live_context(
    devices: MediaDevices,
    presence_sender: PresenceSender | None = None,
    transport_factory: TransportFactory | None = None,
    participant_id: str | None = None,
    guard_seconds: float | None = None,
    heartbeat_interval: float | None = None,
    on_forced_reset: ForcedResetCallback | None = None,
    visible: bool = True,
) -> LiveContext:
    registry = MediaRegistry.create(
        devices,
        transport_factory=transport_factory,
        guard_seconds=guard_seconds,
        on_forced_reset=on_forced_reset,
    )
    presence = (
        PresenceHeartbeat(presence_sender, interval=heartbeat_interval)
        if presence_sender is not None
        else None
    )
    lifecycle = SessionLifecycle(registry, presence=presence, participant_id=participant_id)
    logger.info("Live context created for participant {}", participant_id)
    return LiveContext(
        registry=registry,
        lifecycle=lifecycle,
        presence=presence,
        visibility=PageVisibility(visible=visible),
        flags=NavigationFlags(),
    )


async def reset_live_context(ctx: LiveContext) -> None:
    """Abrupt unmount: release media, drop timers, no final presence call."""
    await ctx.lifecycle.reset()
    # No-op unless media is still held outside a session
    await ctx.registry.reset()
    ctx.flags.clear()
    logger.info("Live context reset for participant {}", ctx.lifecycle.participant_id)
