"""
hurley-kit: Shared client-side building blocks for services.

Modules:
    request     - requests.Session with a circuit-breaking transport adapter
    resilience  - Windowed circuit breaker with generation tracking
    secrets     - TTL secret cache over S3 and Vault, shared lazy SDK clients
    errors      - Error classification and exception hierarchy
    logging     - Structured JSON / logfmt / console logging with context
    metrics     - Prometheus collector for circuit breaker state
    config      - YAML + .env configuration for all of the above
    strutil     - Chunking, eliding and random hex strings

Design Principles:
    - Collaborators (transports, clocks, object getters) are injectable
    - Errors propagate to the caller; nothing is logged and swallowed
    - Type hints throughout
"""

from .types import ErrorCategory, MetricsCollector

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "MetricsCollector",
]
