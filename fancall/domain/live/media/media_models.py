"""Media collaborator protocols and diagnostic models."""

from collections.abc import Awaitable, Sequence
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from fancall.schemas import MediaPhase


@runtime_checkable
class MediaTrack(Protocol):
    """A local camera or microphone track."""

    id: str
    kind: str  # "video" | "audio"

    @property
    def ready_state(self) -> str:  # "live" | "ended"
        ...

    def stop(self) -> None | Awaitable[None]:
        """Stop capture. May be a coroutine when the device release is asynchronous."""
        ...


@runtime_checkable
class MediaStream(Protocol):
    id: str

    def get_tracks(self) -> Sequence[MediaTrack]: ...


class MediaDevices(Protocol):
    """Camera/microphone acquisition. May suspend on a permission prompt."""

    async def acquire(self, video: bool, audio: bool) -> MediaStream: ...


@runtime_checkable
class Transport(Protocol):
    """Peer-connection-like transport. Only its lifecycle calls are used."""

    @property
    def is_connected(self) -> bool: ...

    async def publish_track(self, track: MediaTrack) -> None: ...

    async def close(self) -> None: ...


class ReleaseCheck(BaseModel):
    """What was still held after a teardown asked everything to stop."""

    live_tracks: list[str] = []
    transport_connected: bool = False

    @property
    def leaked(self) -> bool:
        return bool(self.live_tracks) or self.transport_connected


class MediaSummary(BaseModel):
    """Read-only snapshot of the media registry."""

    tag: str
    phase: MediaPhase
    track_count: int = 0
    live_track_count: int = 0
    stream_id: str | None = None
    preview_only: bool | None = None
    has_transport: bool = False
    init_in_flight: bool = False
    end_in_flight: bool = False
    forced_resets: int = 0
    release_check: ReleaseCheck | None = None
