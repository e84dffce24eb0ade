"""
Provider dashboard routes.

- GET   /provider/profile, PATCH /provider/profile
- PUT   /provider/availability
- GET   /provider/bookings, GET /provider/bookings/stream
- POST  /provider/bookings/{booking_id}/accept|decline|complete
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from src.api.dependencies import get_db, get_stream_actor, require_provider
from src.api.routes.bookings import BookingResponse, serialize_bookings, sse_stream
from src.lib.subscriptions import SnapshotSubscription
from src.models.bookings import BookingStatus
from src.models.provider_profiles import ProviderProfile
from src.services.actor import Actor
from src.services.booking_service import BookingService, list_provider_bookings
from src.services.errors import PermissionDeniedError
from src.services.provider_profile_service import ProviderProfileService


# Pydantic schemas
class ProviderProfileResponse(BaseModel):
    provider_id: UUID
    display_name: str
    bio: str
    services: List[str]
    accepting_bookings: bool
    is_online: bool
    is_approved: bool
    rating: float
    review_count: int
    updated_at: datetime

    @classmethod
    def from_profile(cls, profile: ProviderProfile) -> "ProviderProfileResponse":
        return cls(
            provider_id=profile.provider_id,
            display_name=profile.display_name,
            bio=profile.bio,
            services=[s.value for s in profile.services],
            accepting_bookings=profile.accepting_bookings,
            is_online=profile.is_online,
            is_approved=profile.is_approved,
            rating=profile.rating,
            review_count=profile.review_count,
            updated_at=profile.updated_at,
        )


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    bio: Optional[str] = None
    services: Optional[List[str]] = None


class AvailabilityRequest(BaseModel):
    is_online: Optional[bool] = None
    accepting_bookings: Optional[bool] = None


# Router
router = APIRouter(prefix="/provider", tags=["provider"])


@router.get("/profile", response_model=ProviderProfileResponse)
def get_profile(actor: Actor = Depends(require_provider)):
    return ProviderProfileResponse.from_profile(ProviderProfileService().get_profile(actor))


@router.patch("/profile", response_model=ProviderProfileResponse)
def update_profile(
    request: ProfileUpdateRequest,
    actor: Actor = Depends(require_provider),
):
    profile = ProviderProfileService().update_profile(
        actor,
        display_name=request.display_name,
        bio=request.bio,
        services=request.services,
    )
    return ProviderProfileResponse.from_profile(profile)


@router.put("/availability", response_model=ProviderProfileResponse)
def set_availability(
    request: AvailabilityRequest,
    actor: Actor = Depends(require_provider),
):
    profile = ProviderProfileService().set_availability(
        actor,
        is_online=request.is_online,
        accepting_bookings=request.accepting_bookings,
    )
    return ProviderProfileResponse.from_profile(profile)


@router.get("/bookings", response_model=List[BookingResponse])
def provider_bookings(
    status: Optional[BookingStatus] = Query(None, description="Filter by booking status"),
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    """Bookings addressed to the provider, newest first."""
    return [
        BookingResponse.model_validate(b)
        for b in list_provider_bookings(db, actor.user_id, status)
    ]


@router.get("/bookings/stream")
def stream_provider_bookings(
    status: Optional[BookingStatus] = Query(None),
    actor: Actor = Depends(get_stream_actor),
):
    if not actor.is_provider:
        raise PermissionDeniedError("Provider account required")
    subscription = SnapshotSubscription(
        lambda session: serialize_bookings(list_provider_bookings(session, actor.user_id, status)),
        name=f"provider_bookings:{actor.user_id}",
    )
    return sse_stream(subscription, "bookings")


@router.post("/bookings/{booking_id}/accept", response_model=BookingResponse)
def accept_booking(booking_id: UUID, actor: Actor = Depends(require_provider)):
    return BookingResponse.model_validate(BookingService().accept(booking_id, actor))


@router.post("/bookings/{booking_id}/decline", response_model=BookingResponse)
def decline_booking(booking_id: UUID, actor: Actor = Depends(require_provider)):
    return BookingResponse.model_validate(BookingService().decline(booking_id, actor))


@router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(booking_id: UUID, actor: Actor = Depends(require_provider)):
    return BookingResponse.model_validate(BookingService().complete(booking_id, actor))
