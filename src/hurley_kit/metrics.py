"""
Prometheus metrics for the circuit breaker.

PrometheusMetricsCollector implements the MetricsCollector protocol the
breaker reports through. Metrics are created on first use with the label
names of that first call, so every call for one metric name must pass the
same label keys:

    collector = PrometheusMetricsCollector()
    session = new_client(ClientConfig(name="profiles"), metrics_collector=collector)

    # hurley_kit_circuit_breaker_state{circuit_name="profiles"} 0.0
    # hurley_kit_circuit_breaker_calls_total{circuit_name="profiles",result="success"} 12.0
"""

import logging
import threading
from typing import Dict, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "hurley_kit"

DESCRIPTIONS = {
    "circuit_breaker_state": "Circuit state (0=closed, 1=half_open, 2=open)",
    "circuit_breaker_failures": "Failures recorded in the current generation",
    "circuit_breaker_calls_total": "Calls completed through the circuit breaker",
    "circuit_breaker_state_transitions": "Circuit breaker state transitions",
}


class PrometheusMetricsCollector:
    """MetricsCollector backed by prometheus_client counters and gauges."""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = None,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        """
        Args:
            registry: Registry to register metrics in (default: global REGISTRY)
            namespace: Prefix for every metric name
        """
        self.registry = registry if registry is not None else REGISTRY
        self.namespace = namespace
        self._counters: Dict[str, Counter] = {}
        self._gauges: Dict[str, Gauge] = {}
        self._lock = threading.Lock()

    def _describe(self, name: str) -> str:
        return DESCRIPTIONS.get(name, name.replace("_", " "))

    def _counter(self, name: str, labelnames: tuple[str, ...]) -> Counter:
        with self._lock:
            counter = self._counters.get(name)
            if counter is None:
                counter = Counter(
                    name,
                    self._describe(name),
                    labelnames=labelnames,
                    namespace=self.namespace,
                    registry=self.registry,
                )
                self._counters[name] = counter
                logger.debug("Registered counter: name=%s", name)
            return counter

    def _gauge(self, name: str, labelnames: tuple[str, ...]) -> Gauge:
        with self._lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                gauge = Gauge(
                    name,
                    self._describe(name),
                    labelnames=labelnames,
                    namespace=self.namespace,
                    registry=self.registry,
                )
                self._gauges[name] = gauge
                logger.debug("Registered gauge: name=%s", name)
            return gauge

    def increment_counter(self, name: str, labels: dict | None = None) -> None:
        labels = labels or {}
        counter = self._counter(name, tuple(sorted(labels)))
        if labels:
            counter.labels(**labels).inc()
        else:
            counter.inc()

    def set_gauge(self, name: str, value: float, labels: dict | None = None) -> None:
        labels = labels or {}
        gauge = self._gauge(name, tuple(sorted(labels)))
        if labels:
            gauge.labels(**labels).set(value)
        else:
            gauge.set(value)


__all__ = ["PrometheusMetricsCollector", "DEFAULT_NAMESPACE"]
