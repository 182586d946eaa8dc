"""Session read model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"

    def __str__(self) -> str:
        return self.value


class SessionRole(str, Enum):
    CREATOR = "creator"
    USER = "user"

    def __str__(self) -> str:
        return self.value


class Session(BaseModel):
    """One call pairing a single creator and a single fan. Server-owned."""

    session_id: str
    creator_id: str
    fan_id: str
    status: SessionStatus = SessionStatus.ACTIVE
    created_at: datetime
    ended_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status == SessionStatus.ENDED
