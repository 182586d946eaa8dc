from pydantic import BaseModel

from fancall.shared.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG", False)

    # Managed backend (REST + RPC + edge functions)
    BACKEND_BASE_URL: str | None = (config.get("BACKEND_BASE_URL") or "").strip() or None
    BACKEND_API_KEY: str | None = (config.get("BACKEND_API_KEY") or "").strip() or None
    BACKEND_TIMEOUT_SECONDS: float = config.get_float("BACKEND_TIMEOUT_SECONDS", 30.0)

    # Realtime invite feed
    REDIS_URL: str = (config.get("REDIS_URL") or "").strip() or "redis://localhost:6379"
    INVITE_CHANNEL_PREFIX: str = (
        config.get("INVITE_CHANNEL_PREFIX") or ""
    ).strip() or "fancall:invites"

    # LiveKit transport
    LIVEKIT_URL: str | None = (config.get("LIVEKIT_URL") or "").strip() or None

    # Presence heartbeat cadence shared by registered periodic tasks
    PRESENCE_HEARTBEAT_INTERVAL_SECONDS: float = config.get_float(
        "PRESENCE_HEARTBEAT_INTERVAL_SECONDS", 30.0
    )

    # Upper bound for a media teardown before bookkeeping is force-reset to idle
    MEDIA_TEARDOWN_GUARD_SECONDS: float = config.get_float("MEDIA_TEARDOWN_GUARD_SECONDS", 5.0)

    # Handoff protocol
    SESSION_HANDOFF_ENABLED: bool = config.get_bool("SESSION_HANDOFF_ENABLED", True)
    SESSION_ROUTE_BASE: str = (config.get("SESSION_ROUTE_BASE") or "").strip() or "/session"
    CREATOR_NAV_DELAY_SECONDS: float = config.get_float("CREATOR_NAV_DELAY_SECONDS", 0.1)
    FAN_NAV_DELAY_SECONDS: float = config.get_float("FAN_NAV_DELAY_SECONDS", 1.2)
    INVITE_IDLE_WARNING_SECONDS: float = config.get_float("INVITE_IDLE_WARNING_SECONDS", 60.0)


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
