"""Tests for the environment-backed configuration singleton."""

import pytest

from fancall.shared.config import EnvironConfig, config


@pytest.fixture
def reloaded(monkeypatch: pytest.MonkeyPatch):
    """Reload after the test's env changes, and again once they are undone."""
    yield monkeypatch
    monkeypatch.undo()
    config.reload()


class TestEnvironConfig:
    def test_is_singleton(self):
        assert EnvironConfig() is config

    def test_environment_overrides_after_reload(self, reloaded: pytest.MonkeyPatch):
        reloaded.setenv("INVITE_CHANNEL_PREFIX", "test:invites")

        assert config.get("INVITE_CHANNEL_PREFIX") != "test:invites"
        config.reload()

        assert config.get("INVITE_CHANNEL_PREFIX") == "test:invites"

    def test_missing_key_returns_default(self):
        assert config.get("FANCALL_NOT_A_KEY") is None
        assert config.get("FANCALL_NOT_A_KEY", "fallback") == "fallback"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("yes", True), (" ON ", True), ("false", False), ("0", False)],
    )
    def test_get_bool(self, reloaded: pytest.MonkeyPatch, raw: str, expected: bool):
        reloaded.setenv("FANCALL_TEST_FLAG", raw)
        config.reload()

        assert config.get_bool("FANCALL_TEST_FLAG") is expected

    def test_get_bool_blank_uses_default(self, reloaded: pytest.MonkeyPatch):
        reloaded.setenv("FANCALL_TEST_FLAG", "  ")
        config.reload()

        assert config.get_bool("FANCALL_TEST_FLAG", True) is True

    def test_get_float(self, reloaded: pytest.MonkeyPatch):
        reloaded.setenv("FANCALL_TEST_SECONDS", " 2.5 ")
        config.reload()

        assert config.get_float("FANCALL_TEST_SECONDS", 1.0) == 2.5
        assert config.get_float("FANCALL_NOT_A_KEY", 1.0) == 1.0
