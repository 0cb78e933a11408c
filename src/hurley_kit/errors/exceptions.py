"""
Unified exception hierarchy for hurley_kit.

Provides typed exceptions with a category so callers can tell a broken
configuration apart from an open circuit, an authentication failure or a
missing secret without inspecting error messages.
"""

import socket
from collections.abc import Iterator

import requests

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from hurley_kit.types import ErrorCategory


class KitError(Exception):
    """
    Base exception for all kit errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for handling decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.AUTH,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(KitError):
    """Invalid parameter supplied at construction time. Never retried."""

    category = ErrorCategory.PERMANENT


# =============================================================================
# Circuit Breaker Errors
# =============================================================================


class CircuitOpenError(KitError):
    """Circuit breaker is open, rejecting requests."""

    category = ErrorCategory.CIRCUIT_OPEN

    def __init__(
        self,
        circuit_name: str,
        retry_after: float,
        cause: Exception | None = None,
    ):
        message = f"Circuit '{circuit_name}' is open" if circuit_name else "circuit open"
        super().__init__(message, cause, {"circuit_name": circuit_name})
        self.circuit_name = circuit_name
        self.retry_after = retry_after


# =============================================================================
# Authentication / Secret Errors
# =============================================================================


class AuthError(KitError):
    """Base class for authentication errors."""

    category = ErrorCategory.AUTH


class VaultAuthError(AuthError):
    """No usable Vault client token could be established."""

    pass


class SecretNotFoundError(KitError):
    """Secret path does not exist or holds no data."""

    category = ErrorCategory.PERMANENT

    def __init__(self, message: str, path: str):
        super().__init__(message, context={"path": path})
        self.path = path


# =============================================================================
# Error Classification Utilities
# =============================================================================


def _exception_chain(exc: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        yield exc
        exc = exc.__cause__ or exc.__context__


def is_circuit_open_error(exc: BaseException | None) -> bool:
    """
    Check if an error came from an open circuit.

    The HTTP client surfaces the breaker's rejection as a
    requests.ConnectionError chained from CircuitOpenError, so the whole
    cause chain is inspected.
    """
    return any(isinstance(e, CircuitOpenError) for e in _exception_chain(exc))


def is_timeout_error(exc: BaseException | None) -> bool:
    """Check if an error is a request timeout (never true for an open circuit)."""
    if exc is None or is_circuit_open_error(exc):
        return False
    return any(
        isinstance(e, (requests.Timeout, TimeoutError, socket.timeout))
        for e in _exception_chain(exc)
    )


def classify_http_status(status_code: int) -> ErrorCategory:
    """Classify HTTP status code into error category."""
    if 200 <= status_code < 300:
        return ErrorCategory.UNKNOWN  # Not an error

    if status_code in (401, 403):
        return ErrorCategory.AUTH

    if status_code == 429:
        return ErrorCategory.TRANSIENT  # Rate limited

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT  # Server errors, may recover

    return ErrorCategory.UNKNOWN


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, KitError):
        return exc.category

    if is_circuit_open_error(exc):
        return ErrorCategory.CIRCUIT_OPEN

    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return classify_http_status(exc.response.status_code)

    if is_timeout_error(exc) or isinstance(exc, (requests.ConnectionError, ConnectionError)):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


__all__ = [
    "KitError",
    "ConfigurationError",
    "CircuitOpenError",
    "AuthError",
    "VaultAuthError",
    "SecretNotFoundError",
    "is_circuit_open_error",
    "is_timeout_error",
    "classify_http_status",
    "classify_exception",
]
