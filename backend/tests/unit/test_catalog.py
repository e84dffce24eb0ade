"""Tests for service catalog lookups."""
import pytest

from src.models.services import ServiceName
from src.services.catalog import list_services, parse_service
from src.services.errors import InvalidServiceError


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw",
    ["Plumbing & Repairs", "plumbing & repairs", "plumbing-repairs", "PLUMBING_REPAIRS", "  Plumbing & Repairs "],
)
def test_parse_service_accepts_label_slug_and_name(raw):
    assert parse_service(raw) == ServiceName.PLUMBING_REPAIRS


@pytest.mark.unit
def test_parse_service_passes_enum_through():
    assert parse_service(ServiceName.CAREGIVING) is ServiceName.CAREGIVING


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["Pool Cleaning", "", None])
def test_parse_service_rejects_unknown(raw):
    with pytest.raises(InvalidServiceError) as exc_info:
        parse_service(raw)

    assert exc_info.value.status_code == 400
    assert exc_info.value.code == "invalid_service"


@pytest.mark.unit
def test_list_services_covers_catalog():
    services = list_services()

    assert [s["name"] for s in services] == [s.value for s in ServiceName]
    assert services[0] == {
        "name": "Home Cleaning",
        "slug": "home-cleaning",
        "description": services[0]["description"],
    }
    assert all(s["description"] for s in services)
