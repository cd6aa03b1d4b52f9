import pytest

from .fakes import FakeClock, FakePlatform


@pytest.fixture
def fake_platform():
    return FakePlatform()


@pytest.fixture
def fake_clock():
    return FakeClock()
