"""
Resilient HTTP client built on requests.

The client is a plain ``requests.Session`` with a circuit-breaking transport
adapter mounted for http:// and https://, so it can be dropped in wherever
an unconfigured session is used. The only new failure mode is the open
circuit, surfaced as ``requests.ConnectionError`` chained from
``CircuitOpenError``:

    session = new_client()
    try:
        response = session.get("https://profiles.internal/v1/me")
    except requests.RequestException as e:
        if is_circuit_open_error(e):
            # downstream marked unavailable, fail fast
            ...
        elif is_timeout_error(e):
            ...

Responses that fail the validator (5xx by default) are returned to the
caller unmodified; they only count as failures for the breaker.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from urllib3.exceptions import DecodeError, ProtocolError, ReadTimeoutError
from urllib3.exceptions import SSLError as Urllib3SSLError
from urllib3.response import BaseHTTPResponse

from hurley_kit.errors.exceptions import (
    CircuitOpenError,
    ConfigurationError,
    classify_http_status,
)
from hurley_kit.resilience.circuit_breaker import (
    DEFAULT_COOL_DOWN_SECONDS,
    CircuitBreaker,
    failure_ratio_trip,
)
from hurley_kit.types import MetricsCollector

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 3.0
DEFAULT_WINDOW = 5.0
DEFAULT_MIN_OBSERVATIONS = 10
DEFAULT_FAILURE_PERCENTAGE = 50

# Largest single read while draining a response body
READ_CHUNK_SIZE = 64 * 1024

ResponseValidator = Callable[[requests.Response], bool]


def default_response_validator(response: requests.Response) -> bool:
    """Any status code below 500 is a success from the client's point of view."""
    return response.status_code < 500


@dataclass
class ClientConfig:
    """Configuration for the resilient HTTP client."""

    # Seconds over which the breaker aggregates request counts
    window: float = DEFAULT_WINDOW

    # Requests needed in one window before the breaker may trip
    min_observations: int = DEFAULT_MIN_OBSERVATIONS

    # % of failed requests in a window that opens the breaker, in (0, 100]
    failure_percentage: float = DEFAULT_FAILURE_PERCENTAGE

    # Whole-request timeout in seconds (connect, headers and body),
    # applied when the caller passes none
    timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Seconds the breaker stays open before probing
    cool_down: float = DEFAULT_COOL_DOWN_SECONDS

    # Breaker name for logs and metrics
    name: str = ""

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On the first invalid field
        """
        if self.failure_percentage <= 0 or self.failure_percentage > 100:
            raise ConfigurationError("failure_percentage must be in the range (0, 100]")
        if self.min_observations < 0:
            raise ConfigurationError("min_observations must be >= 0")
        if self.window < 0:
            raise ConfigurationError("window must be >= 0")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be greater than 0")
        if self.cool_down < 0:
            raise ConfigurationError("cool_down must be >= 0")


class CircuitBreakingAdapter(BaseAdapter):
    """
    Transport adapter governed by a CircuitBreaker and a ResponseValidator.

    Requests are forwarded to the wrapped ``transport`` adapter. Responses that
    fail the validator signal failures to the breaker. Once the breaker opens,
    outgoing requests are terminated before being forwarded.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        response_validator: ResponseValidator = default_response_validator,
        transport: BaseAdapter | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        super().__init__()
        self.breaker = breaker
        self.response_validator = response_validator
        self.transport = transport or HTTPAdapter()
        self.timeout = timeout

    def _validate(self, response: requests.Response) -> bool:
        valid = self.response_validator(response)
        if not valid:
            logger.debug(
                "Response failed validation",
                extra={
                    "http_status": response.status_code,
                    "http_url": response.url,
                    "error_category": classify_http_status(response.status_code).value,
                },
            )
        return valid

    def _total_seconds(self, timeout) -> float:
        """Whole-request budget for a requests-style timeout value."""
        if isinstance(timeout, (int, float)):
            return float(timeout)
        if isinstance(timeout, tuple):
            parts = [part for part in timeout if part is not None]
            if parts:
                return float(sum(parts))
        return self.timeout

    @staticmethod
    def _abort(response: requests.Response, request: requests.PreparedRequest, timeout) -> None:
        response.close()
        raise requests.ReadTimeout(
            f"Request exceeded its timeout of {timeout} seconds",
            request=request,
            response=response,
        )

    def _read_body(
        self,
        response: requests.Response,
        request: requests.PreparedRequest,
        deadline: float,
        timeout,
    ) -> None:
        """
        Load the body into ``response`` before ``deadline``.

        read1 returns after at most one socket read, so the deadline is checked
        between every chunk the server sends.
        """
        raw = response.raw
        if not isinstance(raw, BaseHTTPResponse):
            # In-memory bodies from custom transports
            response.content
            return

        chunks = []
        while True:
            if time.monotonic() >= deadline:
                self._abort(response, request, timeout)
            try:
                chunk = raw.read1(READ_CHUNK_SIZE, decode_content=True)
            except ReadTimeoutError as e:
                raise requests.ReadTimeout(e, request=request, response=response) from e
            except ProtocolError as e:
                raise requests.exceptions.ChunkedEncodingError(e, request=request) from e
            except DecodeError as e:
                raise requests.exceptions.ContentDecodingError(e, request=request) from e
            except Urllib3SSLError as e:
                raise requests.exceptions.SSLError(e, request=request) from e
            if not chunk:
                break
            chunks.append(chunk)

        response._content = b"".join(chunks)
        response._content_consumed = True
        raw.release_conn()

    def send(
        self,
        request: requests.PreparedRequest,
        stream: bool = False,
        timeout=None,
        verify=True,
        cert=None,
        proxies=None,
    ) -> requests.Response:
        if timeout is None:
            timeout = self.timeout

        def do_send() -> requests.Response:
            deadline = time.monotonic() + self._total_seconds(timeout)
            # Body reads count against the deadline and the breaker
            response = self.transport.send(
                request,
                stream=True,
                timeout=timeout,
                verify=verify,
                cert=cert,
                proxies=proxies,
            )
            if time.monotonic() >= deadline:
                self._abort(response, request, timeout)
            if not stream:
                self._read_body(response, request, deadline, timeout)
            return response

        try:
            return self.breaker.execute(do_send, is_successful=self._validate)
        except CircuitOpenError as e:
            logger.debug(
                "Request rejected by open circuit",
                extra={
                    "http_method": request.method,
                    "http_url": request.url,
                    "circuit_state": "open",
                },
            )
            raise requests.ConnectionError(str(e), request=request) from e

    def close(self) -> None:
        self.transport.close()


def new_client(
    config: ClientConfig | None = None,
    *,
    transport: BaseAdapter | None = None,
    response_validator: ResponseValidator | None = None,
    breaker: CircuitBreaker | None = None,
    metrics_collector: MetricsCollector | None = None,
) -> requests.Session:
    """
    Create a requests.Session protected by a circuit breaker.

    With no arguments the client uses a 3 second timeout for all requests and
    a breaker that opens if a 50% failure rate is observed over a 5 second
    window, with a minimum of 10 requests.

    Args:
        config: Client configuration (defaults as above)
        transport: Adapter that performs the real network calls
            (default: requests.adapters.HTTPAdapter)
        response_validator: Decides whether a response counts as a success
        breaker: Pre-built breaker to share between clients; overrides the
            breaker settings in ``config``
        metrics_collector: Optional collector for breaker metrics

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = config or ClientConfig()
    config.validate()

    if breaker is None:
        breaker = CircuitBreaker(
            name=config.name,
            window=config.window,
            cool_down=config.cool_down,
            ready_to_trip=failure_ratio_trip(
                config.min_observations, config.failure_percentage
            ),
            metrics_collector=metrics_collector,
        )

    adapter = CircuitBreakingAdapter(
        breaker,
        response_validator=response_validator or default_response_validator,
        transport=transport,
        timeout=config.timeout,
    )

    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    logger.debug(
        "Created resilient HTTP client: circuit_name=%s, window=%.2f, "
        "min_observations=%d, failure_percentage=%.1f, timeout=%.2f",
        config.name,
        config.window,
        config.min_observations,
        config.failure_percentage,
        config.timeout,
    )
    return session


__all__ = [
    "CircuitBreakingAdapter",
    "ClientConfig",
    "ResponseValidator",
    "default_response_validator",
    "new_client",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_WINDOW",
    "DEFAULT_MIN_OBSERVATIONS",
    "DEFAULT_FAILURE_PERCENTAGE",
]
