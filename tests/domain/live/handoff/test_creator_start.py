"""Tests for the creator side of the queue-to-session handoff."""

import pytest

from fancall.domain.live.handoff.creator_start import SessionStarter
from fancall.domain.live.handoff.navigation import NavigationFlags
from fancall.domain.live.handoff.readiness import FAN_NOT_READY_REASONS, fan_not_ready_error
from fancall.domain.live.media.media_registry import MediaRegistry
from fancall.domain.live.session.lifecycle import SessionLifecycle
from fancall.schemas import FanState, QueueEntry, SessionPhase
from fancall.utils.app_errors import HandoffDisabled, PreconditionError, SessionStartError
from tests.fixtures.fakes import FakeBackend, RecordingNavigator, RecordingNotifier


@pytest.fixture
async def lifecycle(registry: MediaRegistry) -> SessionLifecycle:
    lifecycle = SessionLifecycle(registry, participant_id="creator_1")
    await lifecycle.go_live()
    return lifecycle


@pytest.fixture
def starter(
    backend: FakeBackend,
    lifecycle: SessionLifecycle,
    navigator: RecordingNavigator,
    notifier: RecordingNotifier,
    flags: NavigationFlags,
) -> SessionStarter:
    return SessionStarter(
        backend, lifecycle, navigator, notifier, flags, nav_delay=0, enabled=True, route_base="/session"
    )


def entry(state: FanState = FanState.READY) -> QueueEntry:
    return QueueEntry(id="q_1", fan_id="fan_1", fan_state=state, fan_name="Sam")


class TestStartSessionSuccess:
    async def test_creates_session_and_navigates(
        self,
        starter: SessionStarter,
        backend: FakeBackend,
        lifecycle: SessionLifecycle,
        navigator: RecordingNavigator,
        notifier: RecordingNotifier,
        flags: NavigationFlags,
    ):
        session_id = await starter.start_session(entry())

        assert session_id == "se_test"
        assert backend.start_calls == ["q_1"]
        assert lifecycle.phase == SessionPhase.SESSION_PREP
        assert flags.should_run_queue_cleanup() is False
        assert notifier.messages == [("Session Starting", "Connecting with Sam...", "default")]

        await starter.pending_navigation.wait()
        assert navigator.assigned == ["/session/se_test?role=creator"]
        assert navigator.replaced == []

    async def test_success_callback_receives_session_id(self, starter: SessionStarter):
        seen: list[str] = []
        starter._on_success = seen.append

        await starter.start_session(entry())

        assert seen == ["se_test"]

    async def test_navigation_can_be_cancelled(
        self, backend: FakeBackend, lifecycle: SessionLifecycle, navigator: RecordingNavigator,
        notifier: RecordingNotifier, flags: NavigationFlags,
    ):
        starter = SessionStarter(
            backend, lifecycle, navigator, notifier, flags, nav_delay=0.05, enabled=True
        )
        await starter.start_session(entry())

        starter.cancel_navigation()
        await starter.pending_navigation.wait()

        assert navigator.assigned == []


class TestStartSessionPreconditions:
    @pytest.mark.parametrize("state", [s for s in FanState if s != FanState.READY])
    async def test_not_ready_fan_never_reaches_backend(
        self,
        starter: SessionStarter,
        backend: FakeBackend,
        navigator: RecordingNavigator,
        notifier: RecordingNotifier,
        state: FanState,
    ):
        result = await starter.start_session(entry(state))

        assert result is None
        assert backend.start_calls == []
        assert navigator.assigned == []
        assert isinstance(starter.last_error, PreconditionError)
        assert notifier.messages == [
            ("Cannot Start Session", FAN_NOT_READY_REASONS[state], "destructive")
        ]

    async def test_disabled_feature(
        self, backend: FakeBackend, lifecycle: SessionLifecycle, navigator: RecordingNavigator,
        notifier: RecordingNotifier, flags: NavigationFlags,
    ):
        starter = SessionStarter(backend, lifecycle, navigator, notifier, flags, enabled=False)

        assert await starter.start_session(entry()) is None

        assert backend.start_calls == []
        assert isinstance(starter.last_error, HandoffDisabled)
        assert notifier.messages[0][0] == "Feature Not Enabled"


class TestStartSessionFailure:
    async def test_server_fan_not_ready_is_surfaced(
        self,
        starter: SessionStarter,
        backend: FakeBackend,
        lifecycle: SessionLifecycle,
        notifier: RecordingNotifier,
        flags: NavigationFlags,
    ):
        """Fan changed state between the local check and the atomic create."""
        backend.start_error = fan_not_ready_error(FanState.DECLINED)
        errors = []
        starter._on_error = errors.append

        assert await starter.start_session(entry()) is None

        assert lifecycle.phase == SessionPhase.DISCOVERABLE
        assert flags.should_run_queue_cleanup() is True
        assert notifier.messages == [
            ("Failed to Start Session", FAN_NOT_READY_REASONS[FanState.DECLINED], "destructive")
        ]
        assert errors == [backend.start_error]
        assert starter.is_processing is False

    async def test_unexpected_error_is_wrapped(self, starter: SessionStarter, backend: FakeBackend):
        backend.start_error = RuntimeError("connection reset by peer")

        await starter.start_session(entry())

        assert isinstance(starter.last_error, SessionStartError)
        assert "peer" not in starter.last_error.errmesg
        assert starter.last_error.__cause__ is backend.start_error

    async def test_empty_session_id_is_a_failure(
        self, starter: SessionStarter, backend: FakeBackend, navigator: RecordingNavigator
    ):
        backend.start_result = None

        assert await starter.start_session(entry()) is None

        assert isinstance(starter.last_error, SessionStartError)
        assert starter.pending_navigation is None
        assert navigator.assigned == []

    async def test_start_while_processing_is_ignored(
        self, starter: SessionStarter, backend: FakeBackend
    ):
        starter.is_processing = True

        assert await starter.start_session(entry()) is None
        assert backend.start_calls == []
