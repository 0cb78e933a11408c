"""
Resilient outbound HTTP client.

Components:
    - new_client: requests.Session with a circuit-breaking adapter mounted
    - CircuitBreakingAdapter: Transport adapter gated by a CircuitBreaker
    - ClientConfig: Window / minimum observations / failure % / timeout
    - is_circuit_open_error / is_timeout_error: Tell the two failure modes apart
"""

from hurley_kit.errors.exceptions import is_circuit_open_error, is_timeout_error
from hurley_kit.request.client import (
    DEFAULT_FAILURE_PERCENTAGE,
    DEFAULT_MIN_OBSERVATIONS,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_WINDOW,
    CircuitBreakingAdapter,
    ClientConfig,
    ResponseValidator,
    default_response_validator,
    new_client,
)

__all__ = [
    "CircuitBreakingAdapter",
    "ClientConfig",
    "ResponseValidator",
    "default_response_validator",
    "new_client",
    "is_circuit_open_error",
    "is_timeout_error",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_WINDOW",
    "DEFAULT_MIN_OBSERVATIONS",
    "DEFAULT_FAILURE_PERCENTAGE",
]
