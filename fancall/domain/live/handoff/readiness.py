"""Fan readiness reasons.

The one table of human-readable reasons for every non-ready fan state. The
local pre-check and the translation of server ``fan_not_ready`` errors both
read from it, so the two paths cannot drift apart.
"""

import re

from fancall.schemas import FanState, QueueEntry
from fancall.utils.app_errors import PreconditionError

FAN_NOT_READY_REASONS: dict[FanState, str] = {
    FanState.WAITING: "Fan is still in queue. Please wait for them to enable their camera.",
    FanState.AWAITING_CONSENT: (
        "Fan is awaiting camera consent. Please wait for them to enable their camera."
    ),
    FanState.DECLINED: "Fan declined to join. Start a session with the next fan in your queue.",
    FanState.IN_CALL: "Fan is already in a call. Please try again when their call ends.",
}

DEFAULT_NOT_READY_REASON = "Fan hasn't enabled their camera yet. Please wait."

_FAN_NOT_READY_RE = re.compile(r"fan_not_ready(?:\s*[:=]\s*([a-z_]+))?")


def not_ready_reason(fan_state: FanState | str | None) -> str:
    try:
        return FAN_NOT_READY_REASONS.get(FanState(fan_state), DEFAULT_NOT_READY_REASON)
    except ValueError:
        return DEFAULT_NOT_READY_REASON


def fan_not_ready_error(fan_state: FanState | str | None) -> PreconditionError:
    state = str(fan_state) if fan_state is not None else None
    return PreconditionError(not_ready_reason(fan_state), fan_state=state)


def check_fan_ready(entry: QueueEntry) -> None:
    """Advisory local gate; the atomic creation operation is the authority.

    Raises:
        PreconditionError: If the fan is in any state other than ready
    """
    if entry.fan_state != FanState.READY:
        raise fan_not_ready_error(entry.fan_state)


def is_fan_not_ready(message: str | None) -> bool:
    return bool(message) and _FAN_NOT_READY_RE.search(message) is not None


def parse_fan_not_ready(message: str | None) -> FanState | None:
    """Sub-state named in a raw ``fan_not_ready`` server message, if any."""
    if not message:
        return None
    match = _FAN_NOT_READY_RE.search(message)
    if match is None or match.group(1) is None:
        return None
    try:
        return FanState(match.group(1))
    except ValueError:
        return None
