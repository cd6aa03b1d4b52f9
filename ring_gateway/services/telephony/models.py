"""Telephony call models."""

from enum import Enum, Flag, auto

from pydantic import BaseModel

NO_CALL = "NO_CALL"

# Characters the platform dialer accepts
DIALABLE_CHARS = frozenset("0123456789+*#")
DTMF_DIGITS = frozenset("0123456789*#ABCD")


class CallState(str, Enum):
    """Coarse line state derived from the raw telephony signal."""

    IDLE = "IDLE"
    DIALING = "DIALING"
    RINGING = "RINGING"
    OFFHOOK = "OFFHOOK"
    ERROR = "ERROR"


class CallHandleState(str, Enum):
    """Per-call state reported by a call object once it exists."""

    NEW = "NEW"
    DIALING = "DIALING"
    RINGING = "RINGING"
    HOLDING = "HOLDING"
    ACTIVE = "ACTIVE"
    CONNECTING = "CONNECTING"
    DISCONNECTING = "DISCONNECTING"
    DISCONNECTED = "DISCONNECTED"
    PULLING = "PULLING"
    SELECT_ACCOUNT = "SELECT_ACCOUNT"
    UNKNOWN = "UNKNOWN"


class CallDirection(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class CallCapability(Flag):
    """Operations a call object advertises support for."""

    NONE = 0
    HOLD = auto()


class DisconnectCause(BaseModel):
    """Why a call ended, as reported by the platform."""

    code: int = 0
    label: str = "unknown"
    reason: str = ""


def sanitize_number(number: str) -> str:
    """Strip everything the dialer would not accept."""
    return "".join(ch for ch in number if ch in DIALABLE_CHARS)


def is_dtmf_digit(digit: str) -> bool:
    return len(digit) == 1 and digit in DTMF_DIGITS
