"""
Resilience patterns module.

Provides fault tolerance primitives for outbound calls.

Components:
    - CircuitBreaker: Windowed state machine (closed/open/half-open)
    - Counts: Per-generation request/outcome totals
    - failure_ratio_trip: Trip predicate for minimum observations + failure %
"""

from .circuit_breaker import (
    DEFAULT_COOL_DOWN_SECONDS,
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    CircuitStats,
    Counts,
    failure_ratio_trip,
)

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "CircuitStats",
    "Counts",
    "failure_ratio_trip",
    "DEFAULT_COOL_DOWN_SECONDS",
]
