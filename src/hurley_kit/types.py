"""
Core types and protocols used across modules.

This module provides base types and enums shared across the kit so that
errors, the circuit breaker and the log formatters agree on one vocabulary.
"""

from enum import Enum
from typing import Protocol


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed later
                   (e.g., connection resets, 429/503 responses)
        AUTH: Authentication failures requiring new credentials
              (e.g., 401 errors, rejected Vault logins)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., invalid configuration, missing secret paths)
        CIRCUIT_OPEN: Circuit breaker is open, rejecting fast without attempting
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    CIRCUIT_OPEN = "circuit_open"
    UNKNOWN = "unknown"


class MetricsCollector(Protocol):
    """Protocol for metrics collection (optional dependency)."""

    def increment_counter(self, name: str, labels: dict | None = None) -> None: ...
    def set_gauge(
        self, name: str, value: float, labels: dict | None = None
    ) -> None: ...


__all__ = [
    "ErrorCategory",
    "MetricsCollector",
]
