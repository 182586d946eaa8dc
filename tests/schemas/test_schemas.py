"""Tests for shared read models."""

from datetime import datetime, timedelta, timezone

from fancall.schemas import (
    FanState,
    InviteStatus,
    QueueEntry,
    Session,
    SessionInvite,
    SessionPhase,
    SessionStatus,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestQueueEntry:
    def test_defaults(self):
        entry = QueueEntry(id="q_1", fan_id="fan_1")

        assert entry.fan_state == FanState.WAITING
        assert entry.display_name == "user"

    def test_display_name_uses_fan_name(self):
        assert QueueEntry(id="q_1", fan_id="fan_1", fan_name="Sam").display_name == "Sam"


class TestSession:
    def test_is_terminal(self):
        session = Session(session_id="se_1", creator_id="c_1", fan_id="fan_1", created_at=NOW)
        assert session.is_terminal is False

        ended = session.model_copy(update={"status": SessionStatus.ENDED, "ended_at": NOW})
        assert ended.is_terminal is True


class TestSessionInvite:
    def invite(self, **kwargs) -> SessionInvite:
        return SessionInvite(id="inv_1", session_id="se_1", invitee_id="fan_1", created_at=NOW, **kwargs)

    def test_without_expiry_never_expires(self):
        assert self.invite().is_expired(NOW + timedelta(days=1)) is False

    def test_expires_at_deadline(self):
        invite = self.invite(expires_at=NOW + timedelta(seconds=30))

        assert invite.is_expired(NOW) is False
        assert invite.is_expired(NOW + timedelta(seconds=30)) is True

    def test_naive_expiry_is_treated_as_utc(self):
        invite = self.invite(expires_at=datetime(2026, 1, 1, 0, 0, 30))

        assert invite.is_expired(NOW) is False

    def test_expired_status(self):
        assert self.invite(status=InviteStatus.EXPIRED).is_expired(NOW) is True

    def test_creator_name_default(self):
        assert self.invite().creator_name == "Creator"


class TestSessionPhase:
    def test_media_phases_are_session_phases(self):
        assert set(SessionPhase.media_phases()) <= set(SessionPhase.session_phases())

    def test_str_is_value(self):
        assert str(SessionPhase.SESSION_ACTIVE) == "SESSION_ACTIVE"
