"""Tests for coarse call-state tracking."""

import pytest

from ring_gateway.services.telephony.base import Permission
from ring_gateway.services.telephony.models import CallState
from ring_gateway.services.telephony.tracker import CallStateTracker

from .fakes import FakePlatform


class Recorder:
    def __init__(self) -> None:
        self.states: list[CallState] = []

    def __call__(self, state: CallState) -> None:
        self.states.append(state)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def tracker(fake_platform, recorder, fake_clock):
    tracker = CallStateTracker(fake_platform, on_state_change=recorder, dial_timeout=60.0, clock=fake_clock)
    tracker.start()
    return tracker


class TestStart:
    def test_start_subscribes(self, fake_platform, recorder):
        tracker = CallStateTracker(fake_platform, on_state_change=recorder)

        assert tracker.start() is True
        assert fake_platform.listener is not None
        assert recorder.states == []

    def test_start_without_read_phone_state_emits_error(self, recorder):
        platform = FakePlatform(permissions={Permission.CALL_PHONE})
        tracker = CallStateTracker(platform, on_state_change=recorder)

        assert tracker.start() is False
        assert recorder.states == [CallState.ERROR]
        assert platform.listener is None

    def test_stop_unsubscribes(self, tracker, fake_platform):
        tracker.stop()
        assert fake_platform.listener is None


class TestDial:
    def test_dial_sanitizes_number(self, tracker, fake_platform, recorder):
        assert tracker.dial("+977 980-000-0000") is True

        assert fake_platform.placed == ["+9779800000000"]
        assert recorder.states == [CallState.DIALING]
        assert tracker.dial_pending is True

    @pytest.mark.parametrize("number", ["", "abc", " - "])
    def test_undialable_number_is_error(self, tracker, fake_platform, recorder, number):
        assert tracker.dial(number) is False

        assert fake_platform.placed == []
        assert recorder.states == [CallState.ERROR]

    def test_missing_call_permission_is_error(self, recorder):
        platform = FakePlatform(permissions={Permission.READ_PHONE_STATE})
        tracker = CallStateTracker(platform, on_state_change=recorder)
        tracker.start()

        assert tracker.dial("100") is False
        assert platform.placed == []
        assert recorder.states == [CallState.ERROR]

    def test_platform_refusal_is_error(self, recorder):
        platform = FakePlatform(refuse_dial=True)
        tracker = CallStateTracker(platform, on_state_change=recorder)
        tracker.start()

        assert tracker.dial("100") is False
        assert recorder.states == [CallState.ERROR]

    def test_repeated_errors_are_each_emitted(self, tracker, recorder):
        tracker.dial("")
        tracker.dial("")
        assert recorder.states == [CallState.ERROR, CallState.ERROR]


class TestRawStates:
    def test_transient_idle_during_setup_is_suppressed(self, tracker, fake_platform, recorder):
        tracker.dial("100")
        fake_platform.emit(CallState.IDLE)
        fake_platform.emit(CallState.OFFHOOK)

        assert recorder.states == [CallState.DIALING, CallState.OFFHOOK]

    def test_idle_after_offhook_ends_call(self, tracker, fake_platform, recorder):
        tracker.dial("100")
        fake_platform.emit(CallState.OFFHOOK)
        fake_platform.emit(CallState.IDLE)

        assert recorder.states == [CallState.DIALING, CallState.OFFHOOK, CallState.IDLE]
        assert tracker.state == CallState.IDLE
        assert tracker.dial_pending is False

    def test_duplicate_states_are_not_reemitted(self, tracker, fake_platform, recorder):
        fake_platform.emit(CallState.RINGING)
        fake_platform.emit(CallState.RINGING)
        fake_platform.emit(CallState.OFFHOOK)
        fake_platform.emit(CallState.OFFHOOK)

        assert recorder.states == [CallState.RINGING, CallState.OFFHOOK]

    def test_idle_while_idle_is_silent(self, tracker, fake_platform, recorder):
        fake_platform.emit(CallState.IDLE)
        assert recorder.states == []

    def test_unexpected_raw_state_ignored(self, tracker, fake_platform, recorder):
        fake_platform.emit(CallState.DIALING)
        assert recorder.states == []

    def test_dial_mask_times_out(self, tracker, fake_platform, recorder, fake_clock):
        tracker.dial("100")
        fake_clock.advance(61)
        fake_platform.emit(CallState.IDLE)

        assert recorder.states == [CallState.DIALING, CallState.IDLE]

    def test_mask_holds_before_timeout(self, tracker, fake_platform, recorder, fake_clock):
        tracker.dial("100")
        fake_clock.advance(59)
        fake_platform.emit(CallState.IDLE)

        assert recorder.states == [CallState.DIALING]

    def test_clear_pending_dial_lifts_mask(self, tracker, fake_platform, recorder):
        tracker.dial("100")
        tracker.clear_pending_dial()
        fake_platform.emit(CallState.IDLE)

        assert recorder.states == [CallState.DIALING, CallState.IDLE]

    def test_clearing_after_swallowed_idle_reports_idle(self, tracker, fake_platform, recorder):
        tracker.dial("100")
        fake_platform.emit(CallState.IDLE)
        assert tracker.state == CallState.DIALING

        tracker.clear_pending_dial()

        assert recorder.states == [CallState.DIALING, CallState.IDLE]
        assert tracker.state == CallState.IDLE
        assert tracker.dial_pending is False

    def test_clearing_without_swallowed_idle_is_silent(self, tracker, recorder):
        tracker.dial("100")
        tracker.clear_pending_dial()
        tracker.clear_pending_dial()

        assert recorder.states == [CallState.DIALING]

    def test_clearing_after_offhook_is_silent(self, tracker, fake_platform, recorder):
        tracker.dial("100")
        fake_platform.emit(CallState.IDLE)
        fake_platform.emit(CallState.OFFHOOK)
        tracker.clear_pending_dial()

        assert recorder.states == [CallState.DIALING, CallState.OFFHOOK]
