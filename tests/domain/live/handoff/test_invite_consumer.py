"""Tests for the fan side of the queue-to-session handoff."""

import asyncio

import pytest

from fancall.domain.live.handoff.handoff_models import SubscriptionStatus
from fancall.domain.live.handoff.invite_consumer import InviteConsumer
from fancall.domain.live.handoff.navigation import NavigationFlags
from fancall.schemas import InviteStatus
from fancall.shared.deferred import PageVisibility
from tests.fixtures.fakes import (
    FakeBackend,
    FakeInviteFeed,
    RecordingNavigator,
    RecordingNotifier,
    make_invite,
)


@pytest.fixture
def consumer(
    feed: FakeInviteFeed,
    backend: FakeBackend,
    navigator: RecordingNavigator,
    notifier: RecordingNotifier,
    flags: NavigationFlags,
    visibility: PageVisibility,
) -> InviteConsumer:
    return InviteConsumer(
        "fan_1",
        feed,
        backend,
        navigator,
        notifier,
        flags,
        visibility,
        nav_delay=0,
        idle_warning=0,
        enabled=True,
        route_base="/session",
    )


async def settle(consumer: InviteConsumer) -> None:
    if consumer.reconcile_task is not None:
        await consumer.reconcile_task
    for pending in consumer.pending_navigations:
        await pending.wait()


class TestPushDelivery:
    async def test_pushed_invite_navigates_once(
        self,
        consumer: InviteConsumer,
        feed: FakeInviteFeed,
        backend: FakeBackend,
        navigator: RecordingNavigator,
        notifier: RecordingNotifier,
        flags: NavigationFlags,
    ):
        await consumer.start()
        invite = make_invite()

        await feed.deliver(invite)
        await feed.deliver(invite)
        await settle(consumer)

        assert navigator.replaced == ["/session/se_1?role=user"]
        assert navigator.assigned == []
        assert backend.accepted == ["inv_1"]
        assert notifier.messages == [
            ("Ava is ready!", "You're next in line. Connecting now...", "default")
        ]
        assert flags.should_run_queue_cleanup() is False

    async def test_non_pending_push_is_ignored(
        self, consumer: InviteConsumer, feed: FakeInviteFeed, navigator: RecordingNavigator
    ):
        await consumer.start()

        await feed.deliver(make_invite(status=InviteStatus.ACCEPTED))
        await settle(consumer)

        assert navigator.replaced == []
        assert consumer.processed_ids == frozenset()

    async def test_concurrent_deliveries_handled_once(
        self, consumer: InviteConsumer, feed: FakeInviteFeed, backend: FakeBackend
    ):
        await consumer.start()
        invite = make_invite()

        results = await asyncio.gather(
            consumer.handle_invite(invite), consumer.handle_invite(invite)
        )

        assert sorted(results) == [False, True]
        assert backend.accepted == ["inv_1"]


class TestColdStart:
    async def test_pending_invite_found_after_subscribe(
        self,
        consumer: InviteConsumer,
        feed: FakeInviteFeed,
        backend: FakeBackend,
        navigator: RecordingNavigator,
    ):
        backend.pending_invite = make_invite()
        await consumer.start()

        feed.ack()
        await settle(consumer)

        assert consumer.status == SubscriptionStatus.SUBSCRIBED
        assert backend.fetch_calls == ["fan_1"]
        assert navigator.replaced == ["/session/se_1?role=user"]

    async def test_cold_start_and_push_race_fire_once(
        self,
        consumer: InviteConsumer,
        feed: FakeInviteFeed,
        backend: FakeBackend,
        navigator: RecordingNavigator,
        notifier: RecordingNotifier,
    ):
        """The same invite seen by the query and the feed has one side effect."""
        invite = make_invite()
        backend.pending_invite = invite
        await consumer.start()

        feed.ack()
        await feed.deliver(invite)
        await settle(consumer)

        assert navigator.replaced == ["/session/se_1?role=user"]
        assert len(notifier.messages) == 1
        assert backend.accepted == ["inv_1"]

    async def test_query_failure_is_contained(
        self, consumer: InviteConsumer, feed: FakeInviteFeed, backend: FakeBackend
    ):
        async def failing_fetch(invitee_id: str):
            raise ConnectionError("offline")

        backend.fetch_pending_invite = failing_fetch
        await consumer.start()

        feed.ack()
        await settle(consumer)

        assert consumer.processed_ids == frozenset()


class TestInviteFiltering:
    async def test_invite_for_someone_else_is_ignored(
        self, consumer: InviteConsumer, navigator: RecordingNavigator
    ):
        assert await consumer.handle_invite(make_invite(invitee_id="fan_2")) is False

        assert navigator.replaced == []
        assert consumer.processed_ids == frozenset()

    async def test_expired_invite_is_skipped(
        self, consumer: InviteConsumer, backend: FakeBackend, navigator: RecordingNavigator
    ):
        assert await consumer.handle_invite(make_invite(expires_in=-1)) is False

        assert backend.accepted == []
        assert navigator.replaced == []

    async def test_accept_failure_still_navigates(
        self, consumer: InviteConsumer, backend: FakeBackend, navigator: RecordingNavigator
    ):
        backend.accept_error = ConnectionError("offline")

        assert await consumer.handle_invite(make_invite()) is True
        await settle(consumer)

        assert navigator.replaced == ["/session/se_1?role=user"]


class TestVisibility:
    async def test_hidden_tab_defers_navigation_until_visible(
        self,
        consumer: InviteConsumer,
        visibility: PageVisibility,
        navigator: RecordingNavigator,
    ):
        visibility.set_visible(False)

        await consumer.handle_invite(make_invite())
        await asyncio.sleep(0.02)

        assert navigator.replaced == []
        assert consumer.pending_navigations[0].deferred is True

        visibility.set_visible(True)
        await settle(consumer)

        assert navigator.replaced == ["/session/se_1?role=user"]

    async def test_stop_cancels_deferred_navigation(
        self,
        consumer: InviteConsumer,
        feed: FakeInviteFeed,
        visibility: PageVisibility,
        navigator: RecordingNavigator,
        flags: NavigationFlags,
    ):
        await consumer.start()
        visibility.set_visible(False)
        await consumer.handle_invite(make_invite())

        await consumer.stop()
        visibility.set_visible(True)
        await asyncio.sleep(0.02)

        assert navigator.replaced == []
        assert flags.should_run_queue_cleanup() is True
        assert feed.unsubscribe_calls == 1
        assert consumer.pending_navigations == []


class TestSubscriptionLifecycle:
    async def test_disabled_does_not_subscribe(
        self, feed: FakeInviteFeed, backend: FakeBackend, navigator: RecordingNavigator,
        notifier: RecordingNotifier, flags: NavigationFlags, visibility: PageVisibility,
    ):
        consumer = InviteConsumer(
            "fan_1", feed, backend, navigator, notifier, flags, visibility, enabled=False
        )

        await consumer.start()

        assert feed.subscribe_calls == 0

    async def test_start_twice_subscribes_once(self, consumer: InviteConsumer, feed: FakeInviteFeed):
        await consumer.start()
        await consumer.start()

        assert feed.subscribe_calls == 1

    async def test_channel_error_is_recorded(self, consumer: InviteConsumer, feed: FakeInviteFeed):
        await consumer.start()

        feed.ack(SubscriptionStatus.CHANNEL_ERROR, ConnectionError("closed"))

        assert consumer.status == SubscriptionStatus.CHANNEL_ERROR
        assert consumer.reconcile_task is None
