"""Application error types.

Every error that can reach a UI callback carries a user-safe ``errmesg``.
Raw backend text is logged by the raiser, never copied into ``errmesg``.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    PRECONDITION_FAILED = 412
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503


class AppErrorCode(str, Enum):
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_TRANSITION = "E_INVALID_TRANSITION"
    E_FAN_NOT_READY = "E_FAN_NOT_READY"
    E_MEDIA_INIT_BLOCKED = "E_MEDIA_INIT_BLOCKED"
    E_MEDIA_ACQUISITION = "E_MEDIA_ACQUISITION"
    E_TRANSPORT = "E_TRANSPORT"
    E_CHANNEL = "E_CHANNEL"
    E_SESSION_START_FAILED = "E_SESSION_START_FAILED"
    E_HANDOFF_DISABLED = "E_HANDOFF_DISABLED"
    E_BACKEND = "E_BACKEND"
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Base error with a code, a user-safe message and the raising call site."""

    default_errcode = AppErrorCode.E_INTERNAL_ERROR
    default_status_code = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        errmesg: str = "We are sorry, an error occurred.",
        errcode: AppErrorCode | str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(errmesg)
        self.errcode = str(errcode or self.default_errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code or self.default_status_code)
        self.erresid = uuid4().hex[:10]
        self.caller_info = self._capture_caller()

    @staticmethod
    def _capture_caller() -> str:
        frame = inspect.currentframe()
        # skip our own frames and any subclass __init__ frames
        while frame is not None and frame.f_code.co_name in {"__init__", "_capture_caller"}:
            frame = frame.f_back
        if frame is None:
            return "unknown"
        module = inspect.getmodule(frame)
        module_name = module.__name__ if module else frame.f_code.co_filename
        return f"{module_name}:{frame.f_code.co_name}:{frame.f_lineno}"

    def __str__(self) -> str:
        return f"{self.errcode}: {self.errmesg}"


class PreconditionError(AppError):
    """The fan is not ready for a session. Recoverable; nothing was created."""

    default_errcode = AppErrorCode.E_FAN_NOT_READY
    default_status_code = HttpStatusCode.PRECONDITION_FAILED

    def __init__(self, errmesg: str, fan_state: str | None = None):
        super().__init__(errmesg)
        self.fan_state = fan_state


class MediaInitBlocked(AppError):
    default_errcode = AppErrorCode.E_MEDIA_INIT_BLOCKED
    default_status_code = HttpStatusCode.CONFLICT


class AcquisitionError(AppError):
    """Camera/microphone permission denied or device unavailable."""

    default_errcode = AppErrorCode.E_MEDIA_ACQUISITION
    default_status_code = HttpStatusCode.SERVICE_UNAVAILABLE


class TransportError(AppError):
    default_errcode = AppErrorCode.E_TRANSPORT
    default_status_code = HttpStatusCode.BAD_GATEWAY


class ChannelError(AppError):
    default_errcode = AppErrorCode.E_CHANNEL
    default_status_code = HttpStatusCode.SERVICE_UNAVAILABLE


class InvalidPhaseTransition(AppError):
    default_errcode = AppErrorCode.E_INVALID_TRANSITION
    default_status_code = HttpStatusCode.CONFLICT


class SessionStartError(AppError):
    default_errcode = AppErrorCode.E_SESSION_START_FAILED
    default_status_code = HttpStatusCode.BAD_GATEWAY


class HandoffDisabled(AppError):
    default_errcode = AppErrorCode.E_HANDOFF_DISABLED
    default_status_code = HttpStatusCode.FORBIDDEN
