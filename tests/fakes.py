"""Test doubles shared across the suite."""

import asyncio
import time

from ring_gateway.services.telephony.base import Permission, PlatformCall, RawStateListener, TelephonyPlatform
from ring_gateway.services.telephony.exceptions import DialError, TelephonyError

ALL_PERMISSIONS = frozenset(Permission)


class FakePlatform(TelephonyPlatform):
    """In-memory telephony stack: records dials, lets tests push raw states."""

    def __init__(self, permissions=ALL_PERMISSIONS, refuse_dial: bool = False) -> None:
        self.permissions = set(permissions)
        self.refuse_dial = refuse_dial
        self.placed: list[str] = []
        self.listener: RawStateListener | None = None

    @property
    def name(self) -> str:
        return "fake"

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.permissions

    def place_call(self, number: str) -> None:
        if self.refuse_dial:
            raise DialError(number, "radio off")
        self.placed.append(number)

    def start_listening(self, listener: RawStateListener) -> None:
        self.listener = listener

    def stop_listening(self) -> None:
        self.listener = None

    def emit(self, state) -> None:
        assert self.listener is not None, "start_listening was never called"
        self.listener(state)


class FakeCall(PlatformCall):
    """Records every control primitive invoked on it."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.actions: list[str] = []
        self.fail_on = fail_on or set()

    def _record(self, action: str) -> None:
        if action in self.fail_on:
            raise TelephonyError(f"{action} refused")
        self.actions.append(action)

    def disconnect(self) -> None:
        self._record("disconnect")

    def hold(self) -> None:
        self._record("hold")

    def unhold(self) -> None:
        self._record("unhold")

    def answer(self) -> None:
        self._record("answer")

    def reject(self) -> None:
        self._record("reject")

    def play_dtmf_tone(self, digit: str) -> None:
        self._record(f"play:{digit}")

    def stop_dtmf_tone(self) -> None:
        self._record("stop")


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the event loop until it holds or ``timeout`` passes."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met within %.1fs" % timeout)
        await asyncio.sleep(0.01)

