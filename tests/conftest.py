import os
import warnings

import pytest

warnings.filterwarnings("ignore", category=DeprecationWarning, module="fancall.shared.*")

# Keep tests independent of any env.local on the developer machine
os.environ.setdefault("SESSION_HANDOFF_ENABLED", "true")

from fancall.domain.live.handoff.navigation import NavigationFlags  # noqa: E402
from fancall.domain.live.media.media_registry import MediaRegistry  # noqa: E402
from fancall.shared.deferred import PageVisibility  # noqa: E402
from tests.fixtures.fakes import (  # noqa: E402
    FakeBackend,
    FakeDevices,
    FakeInviteFeed,
    FakePresenceSender,
    FakeTransport,
    RecordingNavigator,
    RecordingNotifier,
)


@pytest.fixture
def devices() -> FakeDevices:
    return FakeDevices()


@pytest.fixture
def transports() -> list[FakeTransport]:
    return []


@pytest.fixture
def registry(devices: FakeDevices, transports: list[FakeTransport]) -> MediaRegistry:
    def make_transport() -> FakeTransport:
        transport = FakeTransport()
        transports.append(transport)
        return transport

    return MediaRegistry.create(devices, transport_factory=make_transport, guard_seconds=0.2)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def feed() -> FakeInviteFeed:
    return FakeInviteFeed()


@pytest.fixture
def presence_sender() -> FakePresenceSender:
    return FakePresenceSender()


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def flags() -> NavigationFlags:
    return NavigationFlags()


@pytest.fixture
def visibility() -> PageVisibility:
    return PageVisibility(visible=True)
