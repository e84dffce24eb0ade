"""
Provider discovery for the booking flow.

Given a service, returns providers that can take a booking request right now,
best rated first.
"""
from typing import Iterable, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.lib.logging import get_logger
from src.models.provider_profiles import ProviderProfile, ProviderServiceOffering
from src.models.services import ServiceName
from src.services.catalog import parse_service

logger = get_logger(__name__)


def is_bookable(profile: ProviderProfile) -> bool:
    """A provider is bookable only when approved, online and accepting bookings."""
    return bool(profile.is_approved and profile.is_online and profile.accepting_bookings)


def rank_providers(profiles: Iterable[ProviderProfile]) -> List[ProviderProfile]:
    """Drop non-bookable providers and order by rating, then review count (both descending).

    sorted() is stable, so exact ties keep the order they came in.
    """
    return sorted(
        (profile for profile in profiles if is_bookable(profile)),
        key=lambda profile: (profile.rating, profile.review_count),
        reverse=True,
    )


class DiscoveryService:
    """Read-only provider lookup."""

    def __init__(self, session: Session):
        self.session = session

    def find_providers(self, service: Union[str, ServiceName]) -> List[ProviderProfile]:
        """
        Candidate providers for a service.

        Args:
            service: Catalog label, slug or ServiceName

        Returns:
            Ranked providers; empty when nobody is available

        Raises:
            InvalidServiceError: service is not in the catalog
        """
        service_name = parse_service(service)

        stmt = (
            select(ProviderProfile)
            .join(
                ProviderServiceOffering,
                ProviderServiceOffering.provider_id == ProviderProfile.provider_id,
            )
            .where(ProviderServiceOffering.service == service_name)
        )
        profiles = self.session.execute(stmt).scalars().all()
        candidates = rank_providers(profiles)

        logger.info(
            "Provider discovery",
            extra={
                "service": service_name.value,
                "offering": len(profiles),
                "bookable": len(candidates),
            },
        )
        return candidates

    def find_candidate(self, service: Union[str, ServiceName], provider_id) -> Optional[ProviderProfile]:
        """The profile for provider_id if it is currently a candidate for service."""
        return next(
            (p for p in self.find_providers(service) if p.provider_id == provider_id), None
        )
