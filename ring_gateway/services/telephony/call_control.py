"""Call-object registry and programmatic call control.

Once the system hands the gateway real call objects (incoming or
outgoing), CallControlBridge tracks them as CallHandles and exposes
hangup / hold / unhold / answer / reject / DTMF against the right one:

    - active_call: the most recently added handle that is not DISCONNECTED
    - answer / reject: the most recently added RINGING handle
    - hold / unhold: only if the handle advertises CallCapability.HOLD

Every operation returns a bool; False means no eligible call or the
capability is missing. DTMF tones are played as timed play/stop pairs on
the event loop. Timers belonging to a call are cancelled when it is
removed, and each fired action re-checks that its call is still
registered.

Thread-safe: registry mutations and call-control operations hold one
RLock. Listeners are notified outside the lock.
"""

import asyncio
import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from ring_gateway.services.telephony.base import PlatformCall
from ring_gateway.services.telephony.exceptions import TelephonyError
from ring_gateway.services.telephony.models import (
    NO_CALL,
    CallCapability,
    CallDirection,
    CallHandleState,
    DisconnectCause,
    is_dtmf_digit,
)

logger = logging.getLogger(__name__)

DEFAULT_TONE_DURATION = 0.150
DEFAULT_INTER_DIGIT_GAP = 0.100


@dataclass
class CallHandle:
    """One live call object and what the gateway knows about it."""

    call: PlatformCall
    remote_address: str
    direction: CallDirection
    state: CallHandleState = CallHandleState.NEW
    capabilities: CallCapability = CallCapability.NONE
    connect_time_ms: int | None = None
    disconnect_cause: DisconnectCause | None = None
    handle_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def can(self, capability: CallCapability) -> bool:
        return capability in self.capabilities


class CallControlListener:
    """Receives registry notifications. Override what you need."""

    def on_call_added(self, handle: CallHandle) -> None:
        pass

    def on_call_removed(self, handle: CallHandle, cause: DisconnectCause | None, duration_ms: int) -> None:
        pass

    def on_call_state_changed(self, handle: CallHandle, state: CallHandleState) -> None:
        pass


def dtmf_schedule(digits: str, tone_duration: float, inter_digit_gap: float) -> list[tuple[str, float]]:
    """(digit, start offset in seconds) for every valid digit in ``digits``.

    Offsets advance per valid digit only, so skipped characters add no gap.
    """
    step = tone_duration + inter_digit_gap
    schedule = []
    for ch in digits:
        if not is_dtmf_digit(ch):
            logger.warning("Skipping invalid DTMF digit: %r", ch)
            continue
        schedule.append((ch, len(schedule) * step))
    return schedule


class CallControlBridge:
    """Registry of live CallHandles plus the control operations on them.

    Usage::

        bridge = CallControlBridge(tone_duration=0.15, inter_digit_gap=0.1)
        bridge.add_listener(controller_listener)
        handle = bridge.add_call(CallHandle(call=..., remote_address="+977...", direction=...))
        bridge.send_dtmf_sequence("1234#")
        bridge.remove_call(handle, DisconnectCause(label="remote"))
    """

    def __init__(
        self,
        tone_duration: float = DEFAULT_TONE_DURATION,
        inter_digit_gap: float = DEFAULT_INTER_DIGIT_GAP,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._tone_duration = tone_duration
        self._inter_digit_gap = inter_digit_gap
        self._clock = clock
        self._calls: list[CallHandle] = []
        self._listeners: list[CallControlListener] = []
        self._pending_dtmf: dict[str, list[asyncio.TimerHandle]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lock = threading.RLock()
        self._last_call_duration_ms = 0
        self._last_disconnect_cause: DisconnectCause | None = None

    # -- Registry ----------------------------------------------------------

    @property
    def calls(self) -> list[CallHandle]:
        with self._lock:
            return list(self._calls)

    @property
    def active_call(self) -> CallHandle | None:
        with self._lock:
            return self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)

    @property
    def last_disconnect_cause(self) -> DisconnectCause | None:
        return self._last_disconnect_cause

    def add_listener(self, listener: CallControlListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: CallControlListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def get(self, handle_id: str) -> CallHandle | None:
        with self._lock:
            return self._find(handle_id)

    def add_call(self, handle: CallHandle) -> CallHandle:
        with self._lock:
            self._calls.append(handle)
        logger.info(
            "Call added: %s (%s, state=%s)",
            handle.remote_address,
            handle.direction.value,
            handle.state.value,
        )
        for listener in list(self._listeners):
            listener.on_call_added(handle)
        return handle

    def update_state(
        self,
        handle: CallHandle,
        state: CallHandleState,
        connect_time_ms: int | None = None,
        capabilities: CallCapability | None = None,
    ) -> None:
        """Apply a state notification from the call object."""
        with self._lock:
            if self._find(handle.handle_id) is None:
                logger.warning("State %s for unknown call %s ignored", state.value, handle.handle_id)
                return
            handle.state = state
            if capabilities is not None:
                handle.capabilities = capabilities
            if connect_time_ms is not None:
                handle.connect_time_ms = connect_time_ms
            elif state == CallHandleState.ACTIVE and handle.connect_time_ms is None:
                handle.connect_time_ms = self._now_ms()
        logger.info("Call %s state: %s", handle.remote_address, state.value)
        for listener in list(self._listeners):
            listener.on_call_state_changed(handle, state)

    def remove_call(self, handle: CallHandle, cause: DisconnectCause | None = None) -> int:
        """Drop a handle, record its duration and cause. Returns the duration in ms."""
        with self._lock:
            if self._find(handle.handle_id) is None:
                logger.warning("remove_call: call %s not found (already removed?)", handle.handle_id)
                return self._last_call_duration_ms

            duration_ms = self._duration_of(handle)
            self._last_call_duration_ms = duration_ms
            self._last_disconnect_cause = cause
            handle.disconnect_cause = cause
            self._cancel_dtmf_locked(handle.handle_id)
            self._calls.remove(handle)

        logger.info(
            "Call removed: %s cause=%s reason=%s duration=%dms",
            handle.remote_address,
            cause.label if cause else "unknown",
            cause.reason if cause else "",
            duration_ms,
        )
        for listener in list(self._listeners):
            listener.on_call_removed(handle, cause, duration_ms)
        return duration_ms

    # -- Call control ------------------------------------------------------

    def hangup(self) -> bool:
        with self._lock:
            handle = self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)
            return handle is not None and self._invoke(handle, "disconnect", handle.call.disconnect)

    def hold(self) -> bool:
        with self._lock:
            handle = self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)
            if handle is None:
                return False
            if not handle.can(CallCapability.HOLD):
                logger.warning("Call %s does not support hold", handle.remote_address)
                return False
            return self._invoke(handle, "hold", handle.call.hold)

    def unhold(self) -> bool:
        with self._lock:
            handle = self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)
            if handle is None:
                return False
            if not handle.can(CallCapability.HOLD):
                logger.warning("Call %s does not support unhold", handle.remote_address)
                return False
            return self._invoke(handle, "unhold", handle.call.unhold)

    def answer(self) -> bool:
        with self._lock:
            handle = self._last_matching(lambda h: h.state == CallHandleState.RINGING)
            return handle is not None and self._invoke(handle, "answer", handle.call.answer)

    def reject(self) -> bool:
        with self._lock:
            handle = self._last_matching(lambda h: h.state == CallHandleState.RINGING)
            return handle is not None and self._invoke(handle, "reject", handle.call.reject)

    def send_dtmf(self, digit: str) -> bool:
        """Play one tone now and stop it after the tone duration.

        Must be called from the event loop thread.
        """
        with self._lock:
            handle = self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)
            if handle is None:
                return False
            if not is_dtmf_digit(digit):
                logger.warning("Invalid DTMF digit: %r", digit)
                return False
            if not self._invoke(handle, "play_dtmf_tone", lambda: handle.call.play_dtmf_tone(digit)):
                return False
            self._schedule(handle, self._tone_duration, lambda call: call.stop_dtmf_tone())
        return True

    def send_dtmf_sequence(self, digits: str) -> bool:
        """Schedule every valid digit as a play/stop pair. False if none are valid.

        Must be called from the event loop thread.
        """
        with self._lock:
            handle = self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)
            if handle is None:
                return False

            schedule = dtmf_schedule(digits, self._tone_duration, self._inter_digit_gap)
            for digit, start in schedule:
                self._schedule(handle, start, lambda call, d=digit: call.play_dtmf_tone(d))
                self._schedule(handle, start + self._tone_duration, lambda call: call.stop_dtmf_tone())
        return bool(schedule)

    def pending_dtmf_count(self, handle: CallHandle) -> int:
        with self._lock:
            return len(self._pending_dtmf.get(handle.handle_id, []))

    # -- Queries -----------------------------------------------------------

    def call_duration_ms(self) -> int:
        """Elapsed time of the active call, else the last removed call's duration."""
        with self._lock:
            handle = self._last_matching(lambda h: h.state != CallHandleState.DISCONNECTED)
            if handle is None:
                return self._last_call_duration_ms
            return self._duration_of(handle)

    def call_state_label(self) -> str:
        handle = self.active_call
        return handle.state.value if handle is not None else NO_CALL

    # -- Internals ---------------------------------------------------------

    def _find(self, handle_id: str) -> CallHandle | None:
        for handle in self._calls:
            if handle.handle_id == handle_id:
                return handle
        return None

    def _last_matching(self, predicate: Callable[[CallHandle], bool]) -> CallHandle | None:
        for handle in reversed(self._calls):
            if predicate(handle):
                return handle
        return None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _duration_of(self, handle: CallHandle) -> int:
        if handle.connect_time_ms is None or handle.connect_time_ms <= 0:
            return 0
        return max(0, self._now_ms() - handle.connect_time_ms)

    def _invoke(self, handle: CallHandle, action: str, fn: Callable[[], None]) -> bool:
        try:
            fn()
        except TelephonyError as exc:
            logger.error("Call %s: %s failed: %s", handle.remote_address, action, exc)
            return False
        return True

    def _schedule(self, handle: CallHandle, delay: float, action: Callable[[PlatformCall], None]) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        timer = loop.call_later(delay, self._fire, handle.handle_id, action)
        self._pending_dtmf.setdefault(handle.handle_id, []).append(timer)

    def _fire(self, handle_id: str, action: Callable[[PlatformCall], None]) -> None:
        with self._lock:
            self._prune_dtmf_locked(handle_id)
            handle = self._find(handle_id)
            if handle is None:
                return
            try:
                action(handle.call)
            except TelephonyError as exc:
                logger.warning("DTMF action on %s failed: %s", handle.remote_address, exc)

    def _prune_dtmf_locked(self, handle_id: str) -> None:
        timers = self._pending_dtmf.get(handle_id)
        if not timers or self._loop is None:
            return
        now = self._loop.time()
        timers[:] = [t for t in timers if not t.cancelled() and t.when() > now]
        if not timers:
            del self._pending_dtmf[handle_id]

    def _cancel_dtmf_locked(self, handle_id: str) -> None:
        timers = self._pending_dtmf.pop(handle_id, [])
        if not timers or self._loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        for timer in timers:
            if running is self._loop:
                timer.cancel()
            else:
                self._loop.call_soon_threadsafe(timer.cancel)
        logger.debug("Cancelled %d pending DTMF action(s) for call %s", len(timers), handle_id)
