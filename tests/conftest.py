"""Shared fakes for screenbudget tests."""

from datetime import datetime, timedelta, timezone

import pytest

from screenbudget.budget import BudgetEngine
from screenbudget.clock import start_of_day
from screenbudget.config import reset_config
from screenbudget.grants import GrantRegistry
from screenbudget.repository import StateRepository
from screenbudget.usage import InMemoryUsageSource

OWN_PACKAGE = "com.example.screenbudget"


class ManualClock:
    """Clock that only moves when told to."""
    def __init__(self, now=None):
        self._now = now or datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc)

    def now(self):
        return self._now

    def today_start(self):
        return start_of_day(self._now)

    def advance(self, **kwargs):
        self._now = self._now + timedelta(**kwargs)


class FakeHost:
    """Records eviction side effects."""
    def __init__(self, monitoring_enabled=True, fail_kill=False):
        self.monitoring_enabled = monitoring_enabled
        self.fail_kill = fail_kill
        self.home_requests = 0
        self.killed = []

    def is_monitoring_service_enabled(self):
        return self.monitoring_enabled

    def go_home(self):
        self.home_requests += 1

    def kill_background_process(self, package_id):
        if self.fail_kill:
            raise PermissionError("not allowed")
        self.killed.append(package_id)


def record_usage(usage, clock, minutes, package="com.example.game"):
    """Record ``minutes`` of foreground use ending at the clock's now."""
    end = clock.now()
    usage.record_session(package, end - timedelta(minutes=minutes), end)


@pytest.fixture(autouse=True)
def _default_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def usage():
    return InMemoryUsageSource(own_package=OWN_PACKAGE)


@pytest.fixture
def repository():
    return StateRepository()


@pytest.fixture
def engine(repository, usage, clock):
    engine = BudgetEngine(repository, usage, clock)
    repository.initialize_if_needed(clock.today_start())
    return engine


@pytest.fixture
def registry(repository, engine):
    return GrantRegistry(repository, engine)


@pytest.fixture
def host():
    return FakeHost()
