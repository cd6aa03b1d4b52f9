"""Coarse call-state tracking over the raw telephony signal.

Transitions:
    IDLE → DIALING        dial() placed a call
    any  → OFFHOOK        the line went off-hook (call connected)
    any  → RINGING        incoming call ringing
    any  → IDLE           call ended
    any  → ERROR          permission missing or the platform refused

Some radios emit DIALING → IDLE → OFFHOOK while an outgoing call is being
set up. An IDLE that arrives after a dial but before the line has ever
gone off-hook is therefore not treated as "call ended". The mask lifts
once OFFHOOK is seen, when the dial is cleared, or when it times out.
If an IDLE was swallowed and the dial is then cleared, that IDLE is
reported late so the tracker cannot stay in DIALING.
"""

import logging
import threading
import time
from collections.abc import Callable

from ring_gateway.services.telephony.base import Permission, TelephonyPlatform
from ring_gateway.services.telephony.exceptions import TelephonyError
from ring_gateway.services.telephony.models import CallState, sanitize_number

logger = logging.getLogger(__name__)

StateListener = Callable[[CallState], None]

RAW_STATES = (CallState.IDLE, CallState.RINGING, CallState.OFFHOOK)


class CallStateTracker:
    """Normalises raw call-state notifications into CallState changes.

    ``on_state_change`` is invoked outside the internal lock and may be
    called from the platform's callback thread.

    Usage::

        tracker = CallStateTracker(platform, on_state_change=controller.post_call_state)
        tracker.start()
        tracker.dial("+977 980-000-0000")
    """

    def __init__(
        self,
        platform: TelephonyPlatform,
        on_state_change: StateListener,
        dial_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._platform = platform
        self._on_state_change = on_state_change
        self._dial_timeout = dial_timeout
        self._clock = clock
        self._state = CallState.IDLE
        self._dial_started_at: float | None = None
        self._reached_offhook = False
        self._idle_swallowed = False
        self._listening = False
        self._lock = threading.Lock()

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def dial_pending(self) -> bool:
        with self._lock:
            return self._dial_started_at is not None

    def start(self) -> bool:
        """Subscribe to the raw state stream. Emits ERROR without permission."""
        if not self._platform.has_permission(Permission.READ_PHONE_STATE):
            logger.error("READ_PHONE_STATE not granted, call state unavailable")
            self._set_state(CallState.ERROR, force=True)
            return False

        self._platform.start_listening(self.on_raw_state)
        self._listening = True
        logger.info("Listening for call state on %s", self._platform.name)
        return True

    def stop(self) -> None:
        if self._listening:
            self._platform.stop_listening()
            self._listening = False

    def dial(self, number: str) -> bool:
        """Place an outgoing call. Any failure emits ERROR and returns False."""
        sanitized = sanitize_number(number)
        if not sanitized:
            logger.warning("Dial rejected: %r has no dialable characters", number)
            self._set_state(CallState.ERROR, force=True)
            return False

        if not self._platform.has_permission(Permission.CALL_PHONE):
            logger.error("Dial rejected: CALL_PHONE not granted")
            self._set_state(CallState.ERROR, force=True)
            return False

        try:
            self._platform.place_call(sanitized)
        except TelephonyError as exc:
            logger.error("Dial failed for %s: %s", sanitized, exc)
            self._set_state(CallState.ERROR, force=True)
            return False

        with self._lock:
            self._dial_started_at = self._clock()
            self._reached_offhook = False
            self._idle_swallowed = False
        logger.info("Dialing %s", sanitized)
        self._set_state(CallState.DIALING)
        return True

    def clear_pending_dial(self) -> None:
        """Stop masking IDLE for the current dial.

        Called once the dial's call object is gone or its deadline passes.
        If the line already reported IDLE while masked, IDLE is emitted now.
        """
        with self._lock:
            if self._dial_started_at is None:
                return
            self._dial_started_at = None
            line_idle = self._idle_swallowed and not self._reached_offhook
            self._idle_swallowed = False

        if line_idle:
            logger.warning("Pending dial ended without going off-hook")
            self._set_state(CallState.IDLE)

    def on_raw_state(self, raw: CallState) -> None:
        """Feed one raw platform state (IDLE, RINGING or OFFHOOK)."""
        if raw not in RAW_STATES:
            logger.warning("Ignoring unexpected raw call state %s", raw)
            return

        with self._lock:
            if raw == CallState.IDLE:
                if self._idle_masked_locked():
                    logger.info("Ignoring transient IDLE during call setup")
                    self._idle_swallowed = True
                    return
                self._dial_started_at = None
            else:
                self._idle_swallowed = False
                if raw == CallState.OFFHOOK:
                    self._reached_offhook = True

        self._set_state(raw)

    def _idle_masked_locked(self) -> bool:
        if self._dial_started_at is None or self._reached_offhook:
            return False
        if self._clock() - self._dial_started_at >= self._dial_timeout:
            logger.warning("Pending dial timed out before going off-hook")
            return False
        return True

    def _set_state(self, state: CallState, force: bool = False) -> None:
        with self._lock:
            if state == self._state and not force:
                return
            self._state = state
        self._on_state_change(state)
