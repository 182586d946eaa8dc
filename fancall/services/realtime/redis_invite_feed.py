"""Realtime invite feed over Redis pub/sub.

Each invitee listens on its own channel ``<prefix>:<invitee_id>``, so the feed
is filtered to the current identity by construction. Pub/sub delivery is
at-least-once from the consumer's point of view (a producer may republish), and
messages published before the subscription exists are lost; the invite consumer
covers both with its dedup set and cold-start query.
"""

import asyncio

import orjson
from loguru import logger
from pydantic import ValidationError
from redis.asyncio import Redis

from fancall.app_config import get_app_environ_config
from fancall.domain.live.handoff.handoff_models import (
    InviteCallback,
    StatusCallback,
    SubscriptionStatus,
)
from fancall.schemas import SessionInvite
from fancall.shared.log import format_error
from fancall.utils.app_errors import ChannelError


def invite_channel(invitee_id: str, prefix: str | None = None) -> str:
    prefix = prefix or get_app_environ_config().INVITE_CHANNEL_PREFIX
    return f"{prefix}:{invitee_id}"


async def publish_invite(redis: Redis, invite: SessionInvite, prefix: str | None = None) -> int:
    """Publish an invite-created event. Returns the number of receivers."""
    channel = invite_channel(invite.invitee_id, prefix)
    receivers = await redis.publish(channel, orjson.dumps(invite.model_dump(mode="json")))
    logger.debug("Published invite {} to {} ({} receivers)", invite.id, channel, receivers)
    return receivers


class RedisInviteSubscription:
    def __init__(
        self,
        redis: Redis,
        channel: str,
        on_invite: InviteCallback,
        on_status: StatusCallback,
    ):
        self._redis = redis
        self.channel = channel
        self._on_invite = on_invite
        self._on_status = on_status
        self._pubsub = redis.pubsub()
        self._task: asyncio.Task | None = None
        self._closed = False

    def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name=f"invite-feed:{self.channel}")

    async def _listen(self) -> None:
        try:
            await self._pubsub.subscribe(self.channel)
            async for message in self._pubsub.listen():
                kind = message.get("type")
                if kind == "subscribe":
                    self._emit(SubscriptionStatus.SUBSCRIBED)
                elif kind == "message":
                    await self._dispatch(message.get("data"))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Invite feed {} failed: {}", self.channel, format_error(e))
            error = ChannelError("Live updates are unavailable. Please refresh the page.")
            error.__cause__ = e
            self._emit(SubscriptionStatus.CHANNEL_ERROR, error)

    async def _dispatch(self, data: bytes | str | None) -> None:
        if data is None:
            return
        try:
            invite = SessionInvite.model_validate(orjson.loads(data))
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.warning("Dropping invalid invite payload on {}: {}", self.channel, e)
            return
        try:
            await self._on_invite(invite)
        except Exception:
            logger.exception("Invite handler failed for invite {}", invite.id)

    def _emit(self, status: SubscriptionStatus, error: Exception | None = None) -> None:
        try:
            self._on_status(status, error)
        except Exception:
            logger.exception("Invite feed status callback failed ({})", status)

    async def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait({self._task})
        try:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
        except Exception as e:
            logger.warning("Error closing invite feed {}: {}", self.channel, e)
        self._emit(SubscriptionStatus.CLOSED)


class RedisInviteFeed:
    """Invite feed for one invitee identity."""

    def __init__(self, redis: Redis, invitee_id: str, prefix: str | None = None):
        self._redis = redis
        self.invitee_id = invitee_id
        self.channel = invite_channel(invitee_id, prefix)

    async def subscribe(
        self, on_invite: InviteCallback, on_status: StatusCallback
    ) -> RedisInviteSubscription:
        subscription = RedisInviteSubscription(self._redis, self.channel, on_invite, on_status)
        subscription.start()
        logger.info("Subscribing to invite feed {}", self.channel)
        return subscription
