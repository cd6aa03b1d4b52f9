"""Abstract telephony platform interfaces.

The operating system's telephony stack is consumed, not reimplemented.
A host integration supplies three things:

    - TelephonyPlatform: permission checks, the dial primitive and the raw
      coarse call-state stream (IDLE / RINGING / OFFHOOK).
    - PlatformCall: one call object with its control primitives, handed to
      CallControlBridge when the system reports a new call.
    - SmsSender: outgoing text messages.

Callbacks from the platform may arrive on any thread.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

from ring_gateway.services.telephony.exceptions import TelephonyPermissionError
from ring_gateway.services.telephony.models import CallState

RawStateListener = Callable[[CallState], None]


class Permission(str, Enum):
    CALL_PHONE = "CALL_PHONE"
    READ_PHONE_STATE = "READ_PHONE_STATE"
    SEND_SMS = "SEND_SMS"


class TelephonyPlatform(ABC):
    """Abstract base class for the host telephony stack."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Platform identifier string."""

    @abstractmethod
    def has_permission(self, permission: Permission) -> bool:
        """Whether the gateway currently holds ``permission``."""

    @abstractmethod
    def place_call(self, number: str) -> None:
        """Start an outgoing call to an already-sanitised number.

        Raises:
            DialError: If the platform refuses the call.
        """

    @abstractmethod
    def start_listening(self, listener: RawStateListener) -> None:
        """Deliver raw call-state changes to ``listener`` until stopped."""

    @abstractmethod
    def stop_listening(self) -> None:
        """Unregister the raw call-state listener."""


class PlatformCall(ABC):
    """Control primitives of one system call object."""

    @abstractmethod
    def disconnect(self) -> None: ...

    @abstractmethod
    def hold(self) -> None: ...

    @abstractmethod
    def unhold(self) -> None: ...

    @abstractmethod
    def answer(self) -> None:
        """Answer as an audio-only call."""

    @abstractmethod
    def reject(self) -> None: ...

    @abstractmethod
    def play_dtmf_tone(self, digit: str) -> None: ...

    @abstractmethod
    def stop_dtmf_tone(self) -> None: ...


class SmsSender(ABC):
    """Outgoing SMS collaborator."""

    @abstractmethod
    def send_text(self, number: str, message: str) -> None:
        """Send ``message`` to ``number``, splitting into parts if needed.

        Raises:
            TelephonyError: If the message could not be handed to the platform.
        """


class DetachedTelephonyPlatform(TelephonyPlatform):
    """Stand-in used when no host telephony stack is attached.

    Every permission check fails, so dial attempts surface as ERROR
    without touching anything; media and device commands still work.
    """

    @property
    def name(self) -> str:
        return "detached"

    def has_permission(self, permission: Permission) -> bool:
        return False

    def place_call(self, number: str) -> None:
        raise TelephonyPermissionError(Permission.CALL_PHONE.value)

    def start_listening(self, listener: RawStateListener) -> None:
        return None

    def stop_listening(self) -> None:
        return None
