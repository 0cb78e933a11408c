"""
Tests for the windowed circuit breaker.

Verifies:
- Trip predicate (minimum observations + failure percentage)
- State transitions (CLOSED → OPEN → HALF_OPEN → CLOSED)
- Window rollover and generation tracking
- Half-open probe limits
- Metrics and state change callbacks
- Thread safety for concurrent access
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from hurley_kit.errors import ConfigurationError, ErrorCategory
from hurley_kit.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    Counts,
    failure_ratio_trip,
)


class Boom(Exception):
    pass


def _fail():
    raise Boom("downstream failed")


def _ok():
    return "ok"


def _record_failures(breaker, n):
    for _ in range(n):
        with pytest.raises(Boom):
            breaker.execute(_fail)


@pytest.fixture
def breaker(monotonic_clock):
    return CircuitBreaker(
        "profiles",
        window=5.0,
        cool_down=60.0,
        ready_to_trip=failure_ratio_trip(min_observations=10, failure_percentage=50),
        clock=monotonic_clock,
    )


# =============================================================================
# Trip Predicate
# =============================================================================


class TestFailureRatioTrip:
    def test_requires_minimum_observations(self):
        trip = failure_ratio_trip(10, 50)
        assert not trip(Counts(requests=9, total_failures=9))
        assert trip(Counts(requests=10, total_failures=5))

    def test_threshold_is_inclusive(self):
        trip = failure_ratio_trip(4, 50)
        assert trip(Counts(requests=4, total_failures=2))
        assert not trip(Counts(requests=4, total_failures=1))

    def test_no_requests_never_trips(self):
        assert not failure_ratio_trip(0, 100)(Counts())

    @pytest.mark.parametrize("percentage", [0, -5, 100.5, 150])
    def test_rejects_percentage_outside_range(self, percentage):
        with pytest.raises(ConfigurationError):
            failure_ratio_trip(10, percentage)

    def test_accepts_one_hundred_percent(self):
        trip = failure_ratio_trip(2, 100)
        assert trip(Counts(requests=2, total_failures=2))
        assert not trip(Counts(requests=2, total_failures=1))

    def test_rejects_negative_minimum(self):
        with pytest.raises(ConfigurationError):
            failure_ratio_trip(-1, 50)


# =============================================================================
# State Transitions
# =============================================================================


def test_circuit_starts_closed(breaker):
    assert breaker.state == CircuitState.CLOSED
    assert breaker.is_closed
    assert not breaker.is_open


def test_never_opens_below_minimum_observations(breaker):
    _record_failures(breaker, 9)

    assert breaker.state == CircuitState.CLOSED
    assert breaker.counts.total_failures == 9


def test_opens_once_ratio_breached_with_enough_samples(breaker):
    for _ in range(5):
        breaker.execute(_ok)
    _record_failures(breaker, 5)

    assert breaker.state == CircuitState.OPEN


def test_trailing_successes_still_open_when_ratio_breached(breaker):
    _record_failures(breaker, 5)
    for _ in range(5):
        breaker.execute(_ok)

    assert breaker.state == CircuitState.OPEN


def test_open_circuit_fails_fast_without_calling(breaker):
    _record_failures(breaker, 10)
    calls = []

    with pytest.raises(CircuitOpenError) as exc_info:
        breaker.execute(lambda: calls.append(1))

    assert calls == []
    assert exc_info.value.circuit_name == "profiles"
    assert exc_info.value.retry_after == pytest.approx(60.0)
    assert exc_info.value.category == ErrorCategory.CIRCUIT_OPEN


def test_retry_after_counts_down(breaker, monotonic_clock):
    _record_failures(breaker, 10)
    monotonic_clock.advance(45)

    with pytest.raises(CircuitOpenError) as exc_info:
        breaker.execute(_ok)

    assert exc_info.value.retry_after == pytest.approx(15.0)


def test_window_rollover_clears_counts(breaker, monotonic_clock):
    _record_failures(breaker, 9)
    monotonic_clock.advance(5.0)

    _record_failures(breaker, 1)

    assert breaker.state == CircuitState.CLOSED
    assert breaker.counts.requests == 1


def test_zero_window_never_clears(monotonic_clock):
    breaker = CircuitBreaker(
        window=0,
        ready_to_trip=failure_ratio_trip(10, 50),
        clock=monotonic_clock,
    )
    _record_failures(breaker, 9)
    monotonic_clock.advance(3600)
    _record_failures(breaker, 1)

    assert breaker.state == CircuitState.OPEN


def test_transition_open_to_half_open(breaker, monotonic_clock):
    _record_failures(breaker, 10)
    monotonic_clock.advance(59)
    assert breaker.state == CircuitState.OPEN

    monotonic_clock.advance(1)
    assert breaker.state == CircuitState.HALF_OPEN


def test_successful_probe_closes(breaker, monotonic_clock):
    _record_failures(breaker, 10)
    monotonic_clock.advance(60)

    assert breaker.execute(_ok) == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.counts.requests == 0


def test_failed_probe_reopens(breaker, monotonic_clock):
    _record_failures(breaker, 10)
    monotonic_clock.advance(60)

    _record_failures(breaker, 1)

    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        breaker.execute(_ok)


def test_half_open_admits_limited_probes(breaker, monotonic_clock):
    _record_failures(breaker, 10)
    monotonic_clock.advance(60)
    rejected = []

    def probe():
        try:
            breaker.execute(_ok)
        except CircuitOpenError as e:
            rejected.append(e)
        return "probe"

    assert breaker.execute(probe) == "probe"

    assert len(rejected) == 1
    assert rejected[0].retry_after == 0.0
    assert breaker.state == CircuitState.CLOSED


def test_half_open_requires_consecutive_successes(monotonic_clock):
    breaker = CircuitBreaker(
        half_open_max_requests=2,
        ready_to_trip=lambda counts: counts.total_failures >= 1,
        clock=monotonic_clock,
    )
    _record_failures(breaker, 1)
    monotonic_clock.advance(60)

    breaker.execute(_ok)
    assert breaker.state == CircuitState.HALF_OPEN

    breaker.execute(_ok)
    assert breaker.state == CircuitState.CLOSED


def test_default_trip_after_more_than_five_consecutive_failures(monotonic_clock):
    breaker = CircuitBreaker(clock=monotonic_clock)

    _record_failures(breaker, 5)
    assert breaker.state == CircuitState.CLOSED

    _record_failures(breaker, 1)
    assert breaker.state == CircuitState.OPEN


def test_outcome_from_previous_generation_is_discarded(monotonic_clock):
    breaker = CircuitBreaker(
        ready_to_trip=lambda counts: counts.total_failures >= 1,
        clock=monotonic_clock,
    )

    def slow_success():
        # Breaker opens while this call is in flight
        with pytest.raises(Boom):
            breaker.execute(_fail)
        return "late"

    assert breaker.execute(slow_success) == "late"
    assert breaker.state == CircuitState.OPEN


# =============================================================================
# Result Validation
# =============================================================================


def test_unsuccessful_result_is_returned_and_counted(breaker):
    result = breaker.execute(lambda: 503, is_successful=lambda status: status < 500)

    assert result == 503
    assert breaker.counts.total_failures == 1
    assert breaker.counts.requests == 1


def test_validator_exception_counts_as_failure(breaker):
    def validator(_):
        raise ValueError("bad payload")

    with pytest.raises(ValueError):
        breaker.execute(_ok, is_successful=validator)

    assert breaker.counts.total_failures == 1


def test_exception_propagates_unchanged(breaker):
    error = Boom("original")

    def raise_error():
        raise error

    with pytest.raises(Boom) as exc_info:
        breaker.execute(raise_error)

    assert exc_info.value is error


# =============================================================================
# Configuration
# =============================================================================


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window": -1},
        {"cool_down": -1},
        {"half_open_max_requests": 0},
    ],
)
def test_invalid_configuration_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        CircuitBreaker(**kwargs)


# =============================================================================
# Observability
# =============================================================================


def test_state_change_callback(monotonic_clock):
    transitions = []
    breaker = CircuitBreaker(
        "cb",
        ready_to_trip=lambda counts: counts.total_failures >= 1,
        on_state_change=lambda name, old, new: transitions.append((name, old, new)),
        clock=monotonic_clock,
    )

    _record_failures(breaker, 1)
    monotonic_clock.advance(60)
    breaker.execute(_ok)

    assert transitions == [
        ("cb", CircuitState.CLOSED, CircuitState.OPEN),
        ("cb", CircuitState.OPEN, CircuitState.HALF_OPEN),
        ("cb", CircuitState.HALF_OPEN, CircuitState.CLOSED),
    ]


def test_failing_callback_does_not_break_transition(monotonic_clock):
    def callback(name, old, new):
        raise RuntimeError("callback exploded")

    breaker = CircuitBreaker(
        ready_to_trip=lambda counts: counts.total_failures >= 1,
        on_state_change=callback,
        clock=monotonic_clock,
    )
    _record_failures(breaker, 1)

    assert breaker.state == CircuitState.OPEN


def test_metrics_exported(monotonic_clock, metrics_collector):
    breaker = CircuitBreaker(
        "metered",
        ready_to_trip=lambda counts: counts.total_failures >= 2,
        metrics_collector=metrics_collector,
        clock=monotonic_clock,
    )
    breaker.execute(_ok)
    _record_failures(breaker, 2)

    state_key = ("circuit_breaker_state", (("circuit_name", "metered"),))
    assert metrics_collector.gauges[state_key] == 2

    success_key = (
        "circuit_breaker_calls_total",
        (("circuit_name", "metered"), ("result", "success")),
    )
    failure_key = (
        "circuit_breaker_calls_total",
        (("circuit_name", "metered"), ("result", "failure")),
    )
    assert metrics_collector.counters[success_key] == 1
    assert metrics_collector.counters[failure_key] == 2

    transition_key = (
        "circuit_breaker_state_transitions",
        (("circuit_name", "metered"), ("from_state", "closed"), ("to_state", "open")),
    )
    assert metrics_collector.counters[transition_key] == 1


def test_stats_and_diagnostics(breaker):
    breaker.execute(_ok)
    _record_failures(breaker, 9)
    with pytest.raises(CircuitOpenError):
        breaker.execute(_ok)

    stats = breaker.stats
    assert stats.total_calls == 11
    assert stats.successful_calls == 1
    assert stats.failed_calls == 9
    assert stats.rejected_calls == 1
    assert stats.current_state == "open"

    diagnostics = breaker.get_diagnostics()
    assert diagnostics["name"] == "profiles"
    assert diagnostics["state"] == "open"
    assert diagnostics["config"]["window"] == 5.0


def test_reset_closes_circuit(breaker):
    _record_failures(breaker, 10)
    assert breaker.is_open

    breaker.reset()

    assert breaker.is_closed
    assert breaker.execute(_ok) == "ok"


def test_counts_is_a_snapshot(breaker):
    snapshot = breaker.counts
    breaker.execute(_ok)

    assert snapshot.requests == 0
    assert breaker.counts.requests == 1


# =============================================================================
# Thread Safety
# =============================================================================


def test_concurrent_calls_are_all_counted():
    breaker = CircuitBreaker(window=0, ready_to_trip=lambda counts: False)
    barrier = threading.Barrier(16)

    def worker(_):
        barrier.wait()
        for _ in range(50):
            breaker.execute(_ok)

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(worker, range(16)))

    counts = breaker.counts
    assert counts.requests == 800
    assert counts.total_successes == 800
