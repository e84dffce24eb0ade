"""
Unit tests for metrics collection and Prometheus export.
"""
import pytest

from src.lib.metrics import MetricsCollector, get_metrics_collector, reset_metrics


@pytest.fixture
def metrics():
    """Fresh metrics collector for each test."""
    return MetricsCollector()


@pytest.mark.unit
def test_metrics_collector_initialization(metrics):
    assert metrics.export_prometheus() == ""


@pytest.mark.unit
def test_bookings_created_by_service(metrics):
    metrics.increment_bookings_created("Home Cleaning")
    metrics.increment_bookings_created("Home Cleaning", amount=2)
    metrics.increment_bookings_created("Caregiving")

    assert metrics.get_counter_value("bookings_created_total", {"service": "Home Cleaning"}) == 3
    assert metrics.get_counter_value("bookings_created_total", {"service": "Caregiving"}) == 1


@pytest.mark.unit
def test_transition_labels_are_lowercased(metrics):
    """Test transition counters normalise label case."""
    metrics.increment_transitions("ACCEPTED")
    metrics.increment_transitions("completed", outcome="INVALID")

    assert metrics.get_counter_value(
        "booking_transitions_total", {"target_status": "accepted", "outcome": "success"}
    ) == 1
    assert metrics.get_counter_value(
        "booking_transitions_total", {"target_status": "completed", "outcome": "invalid"}
    ) == 1


@pytest.mark.unit
def test_ratings_and_conflicts(metrics):
    metrics.increment_ratings(5)
    metrics.increment_ratings(5)
    metrics.increment_transaction_conflicts("rate_booking")

    assert metrics.get_counter_value("ratings_submitted_total", {"stars": "5"}) == 2
    assert metrics.get_counter_value("transaction_conflicts_total", {"operation": "rate_booking"}) == 1


@pytest.mark.unit
def test_auth_event_defaults(metrics):
    metrics.increment_auth_events("sign_in")

    assert metrics.get_counter_value(
        "auth_events_total", {"event": "sign_in", "method": "password", "outcome": "success"}
    ) == 1


@pytest.mark.unit
def test_prometheus_export_format(metrics):
    """Test export contains HELP, TYPE and sorted labels."""
    metrics.increment_transitions("accepted", amount=4)
    metrics.increment_ratings(3)

    output = metrics.export_prometheus()

    assert "# HELP booking_transitions_total" in output
    assert "# TYPE booking_transitions_total counter" in output
    assert 'booking_transitions_total{outcome="success",target_status="accepted"} 4' in output
    assert 'ratings_submitted_total{stars="3"} 1' in output
    assert output.index("booking_transitions_total") < output.index("ratings_submitted_total")


@pytest.mark.unit
def test_global_collector_singleton_and_reset():
    collector = get_metrics_collector()
    assert collector is get_metrics_collector()

    collector.increment_bookings_created("Handyman")
    reset_metrics()

    assert get_metrics_collector().get_counter_value("bookings_created_total", {"service": "Handyman"}) == 0
