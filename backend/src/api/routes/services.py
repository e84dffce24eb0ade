"""
Service catalog and provider discovery routes.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from src.lib.db import get_db
from src.models.provider_profiles import ProviderProfile
from src.services.catalog import list_services as catalog_services
from src.services.discovery_service import DiscoveryService


# Pydantic schemas
class ServiceResponse(BaseModel):
    name: str
    slug: str
    description: str


class ProviderCardResponse(BaseModel):
    """Public provider card shown in the booking flow."""
    provider_id: UUID
    display_name: str
    bio: str
    services: List[str]
    rating: float
    review_count: int

    @classmethod
    def from_profile(cls, profile: ProviderProfile) -> "ProviderCardResponse":
        return cls(
            provider_id=profile.provider_id,
            display_name=profile.display_name,
            bio=profile.bio,
            services=[s.value for s in profile.services],
            rating=profile.rating,
            review_count=profile.review_count,
        )


# Router
router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=List[ServiceResponse])
def list_services() -> List[ServiceResponse]:
    """The fixed service catalog."""
    return [ServiceResponse(**service) for service in catalog_services()]


@router.get("/{service}/providers", response_model=List[ProviderCardResponse])
def list_providers(service: str, db: Session = Depends(get_db)) -> List[ProviderCardResponse]:
    """
    Providers available for a service right now, best rated first.

    `service` may be the label ("Home Cleaning") or slug ("home-cleaning").
    Returns an empty list when nobody is available; 400 for an unknown service.
    """
    providers = DiscoveryService(db).find_providers(service)
    return [ProviderCardResponse.from_profile(p) for p in providers]
