"""Service catalog lookups."""
from typing import List, Union

from src.models.services import SERVICE_DESCRIPTIONS, ServiceName
from src.services.errors import InvalidServiceError


def parse_service(raw: Union[str, ServiceName]) -> ServiceName:
    """Resolve a label ("Home Cleaning"), slug ("home-cleaning") or enum name.

    Raises:
        InvalidServiceError: if the value is not in the catalog
    """
    if isinstance(raw, ServiceName):
        return raw

    candidate = (raw or "").strip()
    lowered = candidate.lower()
    for service in ServiceName:
        if lowered in (service.value.lower(), service.slug, service.name.lower()):
            return service
    raise InvalidServiceError(candidate)


def list_services() -> List[dict]:
    return [
        {
            "name": service.value,
            "slug": service.slug,
            "description": SERVICE_DESCRIPTIONS[service],
        }
        for service in ServiceName
    ]
