"""
Integration tests for the /metrics endpoint.
"""
import pytest

from src.lib.metrics import get_metrics_collector


@pytest.mark.integration
def test_metrics_endpoint_empty(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == ""


@pytest.mark.integration
def test_metrics_endpoint_exports_counters(client):
    metrics = get_metrics_collector()
    metrics.increment_bookings_created("Home Cleaning")
    metrics.increment_transitions("accepted")
    metrics.increment_ratings(4)

    response = client.get("/metrics")

    body = response.text
    assert "# TYPE bookings_created_total counter" in body
    assert 'bookings_created_total{service="Home Cleaning"} 1' in body
    assert 'booking_transitions_total{outcome="success",target_status="accepted"} 1' in body
    assert 'ratings_submitted_total{stars="4"} 1' in body


@pytest.mark.integration
def test_metrics_reflect_api_activity(client):
    client.post(
        "/auth/sign-up",
        json={"email": "dana@example.com", "password": "s3cret-pass", "name": "Dana"},
    )
    client.post("/auth/sign-in", json={"email": "dana@example.com", "password": "nope-nope"})

    body = client.get("/metrics").text

    assert 'auth_events_total{event="sign_up",method="password",outcome="success"} 1' in body
    assert 'auth_events_total{event="sign_in",method="password",outcome="failure"} 1' in body
    assert 'auth_events_total{event="verification_sent",method="email",outcome="success"} 1' in body
