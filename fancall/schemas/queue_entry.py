"""Queue entry read model."""

from enum import Enum

from pydantic import BaseModel


class FanState(str, Enum):
    WAITING = "waiting"
    AWAITING_CONSENT = "awaiting_consent"
    READY = "ready"
    DECLINED = "declined"
    IN_CALL = "in_call"

    def __str__(self) -> str:
        return self.value


class QueueEntry(BaseModel):
    """A fan's position in a creator's queue, as seen by the creator client."""

    id: str
    fan_id: str
    fan_state: FanState = FanState.WAITING
    fan_name: str | None = None
    position: int | None = None

    @property
    def display_name(self) -> str:
        return self.fan_name or "user"
