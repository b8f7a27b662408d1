import os

import pytest

from core.config import DashboardConfig
from services.sentiment.session import DashboardSession
from tests.fakes.fake_clock import FakeClock


@pytest.fixture(scope="session", autouse=True)
def env_mock_mode():
    os.environ.setdefault("MOCK_MODE", "true")
    os.environ.setdefault("LOG_LEVEL", "WARNING")
    return os.environ["MOCK_MODE"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(clock):
    """Build an unstarted session around a provider, driven by the fake clock."""

    def _factory(provider, subjects=("Wheat", "Sugar"), **overrides) -> DashboardSession:
        config = DashboardConfig(subjects=subjects, **overrides)
        return DashboardSession(config, provider, sleep=clock.sleep)

    return _factory
