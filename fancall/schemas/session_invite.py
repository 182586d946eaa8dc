"""Session invite read model, as delivered by the realtime feed."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


class SessionInvite(BaseModel):
    id: str
    session_id: str
    invitee_id: str
    status: InviteStatus = InviteStatus.PENDING
    creator_name: str = "Creator"
    creator_avatar_url: str | None = None
    created_at: datetime
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.status == InviteStatus.EXPIRED:
            return True
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now
