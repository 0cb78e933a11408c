"""
Error classification and exception hierarchy.

Provides:
- KitError hierarchy for typed exceptions
- Sentinel helpers for the HTTP client (circuit open vs timeout)
- Classification utilities for error handling
"""

from hurley_kit.errors.exceptions import (
    AuthError,
    CircuitOpenError,
    ConfigurationError,
    # Base classes
    KitError,
    SecretNotFoundError,
    VaultAuthError,
    # Classification utilities
    classify_exception,
    classify_http_status,
    is_circuit_open_error,
    is_timeout_error,
)
from hurley_kit.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "KitError",
    "ConfigurationError",
    "CircuitOpenError",
    "AuthError",
    "VaultAuthError",
    "SecretNotFoundError",
    # Classification utilities
    "is_circuit_open_error",
    "is_timeout_error",
    "classify_http_status",
    "classify_exception",
]
