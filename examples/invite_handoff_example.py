"""Example: Fan-side invite handoff over Redis (sanitized demo).

Subscribes an InviteConsumer for one fan to the Redis invite feed, then plays
the creator side by publishing an invite. The consumer notifies, marks the
invite accepted and "navigates" to the session page (printed here).

Prerequisites:
    1. Install dependencies: uv sync
    2. A local Redis: docker run -p 6379:6379 redis
    3. Optional env.local override: REDIS_URL=redis://localhost:6379

Run:
    uv run python examples/invite_handoff_example.py
"""

import asyncio
from datetime import datetime, timedelta, timezone

from redis.asyncio import Redis

from fancall.app_config import get_app_environ_config
from fancall.domain.live.handoff.handoff_models import LogNotifier
from fancall.domain.live.handoff.invite_consumer import InviteConsumer
from fancall.domain.live.handoff.navigation import NavigationFlags
from fancall.schemas import SessionInvite
from fancall.services.realtime.redis_invite_feed import RedisInviteFeed, publish_invite
from fancall.shared.deferred import PageVisibility
from fancall.shared.log import init_logger
from fancall.utils.idgen import new_ulid


class PrintNavigator:
    def assign(self, url: str) -> None:
        print(f"   assign -> {url}")

    def replace(self, url: str) -> None:
        print(f"   replace -> {url}")


class NoopBackend:
    """Stands in for the managed backend so the demo needs only Redis."""

    async def start_session(self, queue_entry_id: str) -> str:
        return new_ulid("se_")

    async def fetch_pending_invite(self, invitee_id: str) -> SessionInvite | None:
        return None

    async def mark_invite_accepted(self, invite_id: str) -> None:
        print(f"   invite {invite_id} accepted")


async def main():
    init_logger()
    cfg = get_app_environ_config()
    redis = Redis.from_url(cfg.REDIS_URL)
    fan_id = new_ulid("fan_")

    print("Invite Handoff Example")
    print("=" * 50)

    consumer = InviteConsumer(
        fan_id,
        RedisInviteFeed(redis, fan_id),
        NoopBackend(),
        PrintNavigator(),
        LogNotifier(),
        NavigationFlags(),
        PageVisibility(),
    )
    await consumer.start()
    await asyncio.sleep(0.5)

    print("\n1. Publishing invite (twice, to show dedup):")
    now = datetime.now(timezone.utc)
    invite = SessionInvite(
        id=new_ulid("inv_"),
        session_id=new_ulid("se_"),
        invitee_id=fan_id,
        creator_name="Jane Host",
        created_at=now,
        expires_at=now + timedelta(minutes=2),
    )
    for _ in range(2):
        receivers = await publish_invite(redis, invite)
        print(f"   delivered to {receivers} subscriber(s)")

    # Navigation fires after the fan delay
    await asyncio.sleep(cfg.FAN_NAV_DELAY_SECONDS + 0.5)

    print("\n2. Cleaning up")
    await consumer.stop()
    await redis.aclose()


if __name__ == "__main__":
    asyncio.run(main())
