from .media_registry import MediaRegistry, can_init_media
from .publish_guard import PublishGuard, stream_identity

__all__ = ["MediaRegistry", "PublishGuard", "can_init_media", "stream_identity"]
