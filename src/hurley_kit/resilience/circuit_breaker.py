"""
Circuit breaker pattern for resilience against cascading failures.

Protects outbound callers from hammering a dependency that is already
failing. Outcomes are aggregated over a rolling window and a pluggable
``ready_to_trip`` predicate decides when the breaker opens.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Failing, requests rejected immediately (fast-fail)
- HALF_OPEN: Testing recovery, limited probe requests allowed

Every state change (and every window rollover while closed) starts a new
generation with fresh counts. Outcomes reported for an older generation are
discarded, so a slow request started before the breaker opened cannot close
it again.

Usage:
    breaker = CircuitBreaker(
        "profile-service",
        window=5.0,
        ready_to_trip=failure_ratio_trip(min_observations=10, failure_percentage=50),
    )
    response = breaker.execute(
        lambda: session.get(url),
        is_successful=lambda r: r.status_code < 500,
    )
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import TypeVar

from hurley_kit.errors.exceptions import CircuitOpenError, ConfigurationError
from hurley_kit.types import MetricsCollector

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_COOL_DOWN_SECONDS = 60.0
DEFAULT_CONSECUTIVE_FAILURES = 5


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class Counts:
    """Request/outcome totals for the current generation."""

    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    def on_request(self) -> None:
        self.requests += 1

    def on_success(self) -> None:
        self.total_successes += 1
        self.consecutive_successes += 1
        self.consecutive_failures = 0

    def on_failure(self) -> None:
        self.total_failures += 1
        self.consecutive_failures += 1
        self.consecutive_successes = 0

    def clear(self) -> None:
        self.requests = 0
        self.total_successes = 0
        self.total_failures = 0
        self.consecutive_successes = 0
        self.consecutive_failures = 0


@dataclass
class CircuitStats:
    """Lifetime statistics for circuit breaker monitoring."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0
    last_failure_time: float | None = None
    last_success_time: float | None = None
    last_state_change_time: float | None = None
    current_state: str = "closed"


def _default_ready_to_trip(counts: Counts) -> bool:
    return counts.consecutive_failures > DEFAULT_CONSECUTIVE_FAILURES


def failure_ratio_trip(
    min_observations: int, failure_percentage: float
) -> Callable[[Counts], bool]:
    """
    Build a ``ready_to_trip`` predicate based on the failure ratio.

    The breaker trips iff at least ``min_observations`` requests were made in
    the current window AND the failure ratio is >= ``failure_percentage``%.
    The minimum prevents a single failure (1 of 1 == 100%) from opening it.

    Raises:
        ConfigurationError: If failure_percentage is outside (0, 100] or
            min_observations is negative
    """
    if failure_percentage <= 0 or failure_percentage > 100:
        raise ConfigurationError("failure_percentage must be in the range (0, 100]")
    if min_observations < 0:
        raise ConfigurationError("min_observations must be >= 0")

    threshold = failure_percentage / 100.0

    def ready_to_trip(counts: Counts) -> bool:
        if counts.requests == 0:
            return False
        failure_ratio = counts.total_failures / counts.requests
        return counts.requests >= min_observations and failure_ratio >= threshold

    return ready_to_trip


class CircuitBreaker:
    """Windowed circuit breaker with generation tracking. Thread-safe."""

    def __init__(
        self,
        name: str = "",
        window: float = 0.0,
        cool_down: float = DEFAULT_COOL_DOWN_SECONDS,
        half_open_max_requests: int = 1,
        ready_to_trip: Callable[[Counts], bool] | None = None,
        on_state_change: Callable[[str, CircuitState, CircuitState], None] | None = None,
        metrics_collector: MetricsCollector | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            name: Identifier used in logs, metrics and CircuitOpenError
            window: Seconds over which counts are aggregated while closed
                (0 never clears them)
            cool_down: Seconds to stay open before probing in half-open
            half_open_max_requests: Probes admitted in half-open; that many
                consecutive successes close the circuit
            ready_to_trip: Predicate evaluated on the counts after each
                outcome while closed (default: more than 5 consecutive failures)
            on_state_change: Callback(name, from_state, to_state)
            metrics_collector: Optional MetricsCollector
            clock: Monotonic time source in seconds

        Raises:
            ConfigurationError: If a duration is negative or
                half_open_max_requests < 1
        """
        if window < 0:
            raise ConfigurationError("window must be >= 0")
        if cool_down < 0:
            raise ConfigurationError("cool_down must be >= 0")
        if half_open_max_requests < 1:
            raise ConfigurationError("half_open_max_requests must be >= 1")

        self.name = name
        self.window = window
        self.cool_down = cool_down
        self.half_open_max_requests = half_open_max_requests
        self.ready_to_trip = ready_to_trip or _default_ready_to_trip
        self.on_state_change = on_state_change
        self._metrics = metrics_collector
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._generation = 0
        self._counts = Counts()
        self._expiry = 0.0

        self._stats = CircuitStats()
        self._lock = threading.RLock()

        self._new_generation(self._clock())
        self._export_state_metric()

    @property
    def state(self) -> CircuitState:
        """Current circuit state (may transition on access)."""
        with self._lock:
            state, _ = self._current_state(self._clock())
            return state

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def counts(self) -> Counts:
        """Snapshot of the current generation's counts."""
        with self._lock:
            self._current_state(self._clock())
            return replace(self._counts)

    @property
    def stats(self) -> CircuitStats:
        """Get copy of current statistics."""
        with self._lock:
            self._current_state(self._clock())
            return replace(self._stats, current_state=self._state.value)

    def _new_generation(self, now: float) -> None:
        self._generation += 1
        self._counts.clear()

        if self._state == CircuitState.CLOSED:
            self._expiry = now + self.window if self.window > 0 else 0.0
        elif self._state == CircuitState.OPEN:
            self._expiry = now + self.cool_down
        else:
            self._expiry = 0.0

    def _current_state(self, now: float) -> tuple[CircuitState, int]:
        if self._state == CircuitState.CLOSED:
            if self._expiry and self._expiry <= now:
                self._new_generation(now)
        elif self._state == CircuitState.OPEN:
            if self._expiry <= now:
                logger.debug(
                    "Circuit breaker cool-down elapsed, transitioning to half-open: "
                    "circuit_name=%s, cool_down_seconds=%.2f",
                    self.name,
                    self.cool_down,
                )
                self._transition_to(CircuitState.HALF_OPEN, now)
        return self._state, self._generation

    def _transition_to(self, new_state: CircuitState, now: float) -> None:
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        self._new_generation(now)

        self._stats.state_changes += 1
        self._stats.last_state_change_time = now
        self._stats.current_state = new_state.value

        if self._metrics:
            self._metrics.increment_counter(
                "circuit_breaker_state_transitions",
                labels={
                    "circuit_name": self.name,
                    "from_state": old_state.value,
                    "to_state": new_state.value,
                },
            )

        if new_state == CircuitState.CLOSED:
            logger.info(
                "Circuit closed: circuit_name=%s",
                self.name,
                extra={"circuit_state": new_state.value},
            )
        elif new_state == CircuitState.HALF_OPEN:
            logger.info(
                "Circuit half-open: circuit_name=%s",
                self.name,
                extra={"circuit_state": new_state.value},
            )
        else:
            logger.warning(
                "Circuit open: circuit_name=%s, cool_down_seconds=%.2f",
                self.name,
                self.cool_down,
                extra={"circuit_state": new_state.value},
            )

        if self.on_state_change:
            try:
                self.on_state_change(self.name, old_state, new_state)
            except Exception as e:
                logger.warning(
                    "Error in circuit state change callback: circuit_name=%s, error=%s",
                    self.name,
                    str(e),
                    extra={"callback_error": str(e)},
                )

        self._export_state_metric()

    def _export_state_metric(self) -> None:
        if not self._metrics:
            return

        # 0=closed, 1=half_open, 2=open
        state_value = {
            CircuitState.CLOSED: 0,
            CircuitState.HALF_OPEN: 1,
            CircuitState.OPEN: 2,
        }[self._state]

        self._metrics.set_gauge(
            "circuit_breaker_state", state_value, labels={"circuit_name": self.name}
        )
        self._metrics.set_gauge(
            "circuit_breaker_failures",
            self._counts.total_failures,
            labels={"circuit_name": self.name},
        )

    def _before_request(self) -> int:
        with self._lock:
            now = self._clock()
            state, generation = self._current_state(now)
            self._stats.total_calls += 1

            if state == CircuitState.OPEN:
                self._stats.rejected_calls += 1
                raise CircuitOpenError(self.name, max(0.0, self._expiry - now))

            if (
                state == CircuitState.HALF_OPEN
                and self._counts.requests >= self.half_open_max_requests
            ):
                self._stats.rejected_calls += 1
                raise CircuitOpenError(self.name, 0.0)

            self._counts.on_request()
            return generation

    def _after_request(self, before: int, success: bool) -> None:
        with self._lock:
            now = self._clock()
            if success:
                self._stats.successful_calls += 1
                self._stats.last_success_time = now
            else:
                self._stats.failed_calls += 1
                self._stats.last_failure_time = now

            if self._metrics:
                self._metrics.increment_counter(
                    "circuit_breaker_calls_total",
                    labels={
                        "circuit_name": self.name,
                        "result": "success" if success else "failure",
                    },
                )

            state, generation = self._current_state(now)
            if generation != before:
                logger.debug(
                    "Discarding outcome from previous generation: circuit_name=%s",
                    self.name,
                )
                return

            if success:
                self._on_success(state, now)
            else:
                self._on_failure(state, now)

            self._export_state_metric()

    def _on_success(self, state: CircuitState, now: float) -> None:
        self._counts.on_success()
        if state == CircuitState.CLOSED:
            if self.ready_to_trip(replace(self._counts)):
                self._transition_to(CircuitState.OPEN, now)
        elif state == CircuitState.HALF_OPEN:
            if self._counts.consecutive_successes >= self.half_open_max_requests:
                self._transition_to(CircuitState.CLOSED, now)

    def _on_failure(self, state: CircuitState, now: float) -> None:
        if state == CircuitState.CLOSED:
            self._counts.on_failure()
            logger.debug(
                "Circuit breaker failure recorded: circuit_name=%s, requests=%d, failures=%d",
                self.name,
                self._counts.requests,
                self._counts.total_failures,
            )
            if self.ready_to_trip(replace(self._counts)):
                self._transition_to(CircuitState.OPEN, now)
        elif state == CircuitState.HALF_OPEN:
            # Any failed probe goes back to open
            self._transition_to(CircuitState.OPEN, now)

    def execute(
        self,
        func: Callable[[], T],
        is_successful: Callable[[T], bool] | None = None,
    ) -> T:
        """
        Run ``func`` through the breaker.

        Raises CircuitOpenError without calling ``func`` while the circuit is
        open (or half-open with all probe slots taken). An exception from
        ``func`` counts as a failure and propagates unchanged. A returned
        value is judged by ``is_successful`` and returned either way.
        """
        generation = self._before_request()

        # Execute outside lock
        try:
            result = func()
            success = is_successful(result) if is_successful else True
        except BaseException:
            self._after_request(generation, False)
            raise

        self._after_request(generation, success)
        return result

    def reset(self) -> None:
        with self._lock:
            now = self._clock()
            self._transition_to(CircuitState.CLOSED, now)
            self._new_generation(now)
            self._export_state_metric()
            logger.info(
                "Circuit manually reset: circuit_name=%s",
                self.name,
            )

    def get_diagnostics(self) -> dict:
        with self._lock:
            self._current_state(self._clock())
            return {
                "name": self.name,
                "state": self._state.value,
                "generation": self._generation,
                "counts": {
                    "requests": self._counts.requests,
                    "total_successes": self._counts.total_successes,
                    "total_failures": self._counts.total_failures,
                    "consecutive_successes": self._counts.consecutive_successes,
                    "consecutive_failures": self._counts.consecutive_failures,
                },
                "config": {
                    "window": self.window,
                    "cool_down": self.cool_down,
                    "half_open_max_requests": self.half_open_max_requests,
                },
                "stats": {
                    "total_calls": self._stats.total_calls,
                    "successful_calls": self._stats.successful_calls,
                    "failed_calls": self._stats.failed_calls,
                    "rejected_calls": self._stats.rejected_calls,
                    "state_changes": self._stats.state_changes,
                },
            }


__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CircuitStats",
    "Counts",
    "MetricsCollector",
    "failure_ratio_trip",
    "DEFAULT_COOL_DOWN_SECONDS",
]
