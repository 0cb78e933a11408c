"""Tests for the Prometheus metrics collector."""

from prometheus_client import CollectorRegistry

from hurley_kit.metrics import PrometheusMetricsCollector
from hurley_kit.resilience import CircuitBreaker


def _collector():
    registry = CollectorRegistry()
    return PrometheusMetricsCollector(registry=registry), registry


def test_counter_with_labels():
    collector, registry = _collector()

    collector.increment_counter("circuit_breaker_calls_total", {"circuit_name": "a", "result": "success"})
    collector.increment_counter("circuit_breaker_calls_total", {"circuit_name": "a", "result": "success"})

    value = registry.get_sample_value(
        "hurley_kit_circuit_breaker_calls_total",
        {"circuit_name": "a", "result": "success"},
    )
    assert value == 2.0


def test_unlabelled_counter():
    collector, registry = _collector()
    collector.increment_counter("secret_refreshes")

    assert registry.get_sample_value("hurley_kit_secret_refreshes_total") == 1.0


def test_gauge_set():
    collector, registry = _collector()
    collector.set_gauge("circuit_breaker_state", 1, {"circuit_name": "a"})
    collector.set_gauge("circuit_breaker_state", 2, {"circuit_name": "a"})

    assert registry.get_sample_value("hurley_kit_circuit_breaker_state", {"circuit_name": "a"}) == 2.0


def test_custom_namespace():
    registry = CollectorRegistry()
    collector = PrometheusMetricsCollector(registry=registry, namespace="billing")
    collector.set_gauge("circuit_breaker_state", 0, {"circuit_name": "a"})

    assert registry.get_sample_value("billing_circuit_breaker_state", {"circuit_name": "a"}) == 0.0


def test_breaker_reports_through_collector(monotonic_clock):
    collector, registry = _collector()
    breaker = CircuitBreaker(
        "profiles",
        ready_to_trip=lambda counts: counts.total_failures >= 1,
        metrics_collector=collector,
        clock=monotonic_clock,
    )

    try:
        breaker.execute(lambda: 1 / 0)
    except ZeroDivisionError:
        pass

    assert registry.get_sample_value("hurley_kit_circuit_breaker_state", {"circuit_name": "profiles"}) == 2.0
    assert (
        registry.get_sample_value(
            "hurley_kit_circuit_breaker_state_transitions_total",
            {"circuit_name": "profiles", "from_state": "closed", "to_state": "open"},
        )
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "hurley_kit_circuit_breaker_calls_total",
            {"circuit_name": "profiles", "result": "failure"},
        )
        == 1.0
    )
