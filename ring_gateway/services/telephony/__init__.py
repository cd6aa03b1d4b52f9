"""Telephony service — coarse call-state tracking and call-object control.

Public API:
    - CallStateTracker: Raw IDLE/RINGING/OFFHOOK stream → CallState, dial().
    - CallControlBridge: Registry of live CallHandles, hold/answer/DTMF/hangup.
    - TelephonyPlatform / PlatformCall / SmsSender: Host integration seams.
"""

from ring_gateway.services.telephony.base import (
    DetachedTelephonyPlatform,
    Permission,
    PlatformCall,
    SmsSender,
    TelephonyPlatform,
)
from ring_gateway.services.telephony.call_control import (
    CallControlBridge,
    CallControlListener,
    CallHandle,
    dtmf_schedule,
)
from ring_gateway.services.telephony.exceptions import DialError, TelephonyError, TelephonyPermissionError
from ring_gateway.services.telephony.models import (
    NO_CALL,
    CallCapability,
    CallDirection,
    CallHandleState,
    CallState,
    DisconnectCause,
    sanitize_number,
)
from ring_gateway.services.telephony.tracker import CallStateTracker

__all__ = [
    "NO_CALL",
    "CallCapability",
    "CallControlBridge",
    "CallControlListener",
    "CallDirection",
    "CallHandle",
    "CallHandleState",
    "CallState",
    "CallStateTracker",
    "DetachedTelephonyPlatform",
    "DialError",
    "DisconnectCause",
    "Permission",
    "PlatformCall",
    "SmsSender",
    "TelephonyError",
    "TelephonyPermissionError",
    "TelephonyPlatform",
    "dtmf_schedule",
    "sanitize_number",
]
