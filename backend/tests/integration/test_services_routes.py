"""
Integration tests for the service catalog and provider discovery routes.
"""
import pytest

from conftest import make_provider
from src.models.services import ServiceName


@pytest.mark.integration
def test_list_services(client):
    response = client.get("/services")

    assert response.status_code == 200
    data = response.json()
    assert [s["name"] for s in data] == [s.value for s in ServiceName]
    assert data[1]["slug"] == "plumbing-repairs"
    assert all(s["description"] for s in data)


@pytest.mark.integration
def test_providers_ranked_by_rating_then_reviews(client):
    make_provider(name="A", rating_total=18, review_count=4)  # 4.5
    b = make_provider(name="B", rating_total=45, review_count=10)  # 4.5
    c = make_provider(name="C", rating_total=5, review_count=1)  # 5.0
    make_provider(name="Offline", rating_total=5, review_count=1, online=False)
    make_provider(name="Paused", rating_total=5, review_count=1, accepting=False)
    make_provider(name="Unapproved", rating_total=5, review_count=1, approved=False)
    make_provider(name="Plumber", services=(ServiceName.PLUMBING_REPAIRS,))

    response = client.get("/services/home-cleaning/providers")

    assert response.status_code == 200
    cards = response.json()
    assert [card["display_name"] for card in cards] == ["C", "B", "A"]
    assert cards[0]["provider_id"] == str(c.provider_id)
    assert cards[1] == {
        "provider_id": str(b.provider_id),
        "display_name": "B",
        "bio": "",
        "services": ["Home Cleaning"],
        "rating": 4.5,
        "review_count": 10,
    }


@pytest.mark.integration
def test_providers_by_label(client, provider):
    response = client.get("/services/Home Cleaning/providers")

    assert [card["display_name"] for card in response.json()] == ["Sparkle Cleaners"]


@pytest.mark.integration
def test_no_providers_is_empty_list(client):
    response = client.get("/services/caregiving/providers")

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.integration
def test_unknown_service(client):
    response = client.get("/services/dog-walking/providers")

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_service"
