"""
Shared fixtures for invocation profiler tests.
"""

import pytest

from invocation_profiler import DependencyQueues, ProfilingSession, QueryLog


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end tests through the invocation watcher")


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock(100.0)


@pytest.fixture
def query_log():
    return QueryLog()


@pytest.fixture
def dependencies():
    return DependencyQueues()


@pytest.fixture
def session(clock, query_log, dependencies):
    """Session tracking queries, scripts and styles with a fake clock."""
    return ProfilingSession(trackers=[query_log, dependencies], clock=clock)
