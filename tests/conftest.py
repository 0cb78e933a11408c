"""
pytest configuration for hurley_kit tests.

Adds src directory to Python path for imports and provides the fake
collaborators (clocks, metrics) shared across test modules.
"""

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


class FakeMonotonicClock:
    """Monotonic seconds that only move when the test says so."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUtcClock:
    """UtcClock whose time is advanced explicitly."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def utc_now(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class MockMetricsCollector:
    """Mock metrics collector for testing."""

    def __init__(self):
        self.counters = {}
        self.gauges = {}

    def increment_counter(self, name: str, labels: Optional[dict] = None):
        key = (name, tuple(sorted((labels or {}).items())))
        self.counters[key] = self.counters.get(key, 0) + 1

    def set_gauge(self, name: str, value: float, labels: Optional[dict] = None):
        key = (name, tuple(sorted((labels or {}).items())))
        self.gauges[key] = value


@pytest.fixture
def monotonic_clock():
    return FakeMonotonicClock()


@pytest.fixture
def utc_clock():
    return FakeUtcClock()


@pytest.fixture
def metrics_collector():
    return MockMetricsCollector()
