import pytest

from fakes import FakeAppFactory, FakeTimerFactory


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture
def app_factory():
    return FakeAppFactory()
