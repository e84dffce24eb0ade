"""
Customer booking routes.

- POST /bookings: Create a booking from a completed booking draft
- GET  /bookings: Customer's bookings, newest first
- GET  /bookings/stream: Server-Sent Events with booking list snapshots
- POST /bookings/{booking_id}/rating: Rate a completed booking
"""
import json
from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from src.api.dependencies import get_db, get_stream_actor, require_customer
from src.lib.subscriptions import SnapshotSubscription
from src.services.actor import Actor
from src.services.booking_service import BookingService, list_customer_bookings
from src.services.booking_wizard import LAST_STEP, BookingDraft
from src.services.errors import PermissionDeniedError
from src.services.rating_service import RatingService


# Pydantic schemas
class BookingCreateRequest(BaseModel):
    """Fields collected by the booking wizard."""
    service: str = Field(..., examples=["Home Cleaning"])
    provider_id: Optional[UUID] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[time] = None
    address: str = ""
    notes: str = ""

    def to_draft(self) -> BookingDraft:
        return BookingDraft(
            step=LAST_STEP,
            service=self.service,
            provider_id=self.provider_id,
            scheduled_date=self.scheduled_date,
            scheduled_time=self.scheduled_time,
            address=self.address,
            notes=self.notes,
        )


class BookingResponse(BaseModel):
    id: UUID
    customer_id: UUID
    customer_name: str
    customer_email: str
    provider_id: UUID
    provider_name: str
    service: str
    scheduled_date: date
    scheduled_time: time
    address: str
    notes: Optional[str] = None
    status: str
    customer_rating: Optional[int] = None
    rated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("service", "status", mode="before")
    @classmethod
    def _enum_value(cls, value):
        return getattr(value, "value", value)


class RatingRequest(BaseModel):
    rating: int = Field(..., description="Whole stars, 1-5")


class RatingResponse(BaseModel):
    booking_id: UUID
    customer_rating: int
    rated_at: datetime
    provider_rating: float
    provider_review_count: int


def sse_stream(subscription: SnapshotSubscription, event: str) -> StreamingResponse:
    """Stream each snapshot as an SSE event until the client disconnects."""

    async def event_generator():
        try:
            async for snapshot in subscription:
                yield f"event: {event}\ndata: {json.dumps(snapshot)}\n\n"
        finally:
            subscription.close()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def serialize_bookings(bookings) -> List[dict]:
    return [BookingResponse.model_validate(b).model_dump(mode="json") for b in bookings]


# Router
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    actor: Actor = Depends(require_customer),
):
    """
    Request a booking. The provider must currently be available for the service.

    Raises:
        400: Unknown service
        404: Provider not available for the service
        422: A booking step is incomplete
    """
    booking = BookingService().create_booking(actor, request.to_draft())
    return BookingResponse.model_validate(booking)


@router.get("", response_model=List[BookingResponse])
def my_bookings(
    actor: Actor = Depends(require_customer),
    db: Session = Depends(get_db),
):
    return [BookingResponse.model_validate(b) for b in list_customer_bookings(db, actor.user_id)]


@router.get("/stream")
def stream_my_bookings(actor: Actor = Depends(get_stream_actor)):
    if not actor.is_customer:
        raise PermissionDeniedError("Customer account required")
    subscription = SnapshotSubscription(
        lambda session: serialize_bookings(list_customer_bookings(session, actor.user_id)),
        name=f"customer_bookings:{actor.user_id}",
    )
    return sse_stream(subscription, "bookings")


@router.post("/{booking_id}/rating", response_model=RatingResponse)
def rate_booking(
    booking_id: UUID,
    request: RatingRequest,
    actor: Actor = Depends(require_customer),
):
    """
    Rate a completed booking once.

    Raises:
        400: Rating outside 1-5
        403: Not the booking's customer
        404: Booking not found
        409: Booking not completed, already rated, or concurrent update
    """
    result = RatingService().rate_booking(booking_id, request.rating, actor)
    return RatingResponse(
        booking_id=result.booking_id,
        customer_rating=result.customer_rating,
        rated_at=result.rated_at,
        provider_rating=result.provider_rating,
        provider_review_count=result.provider_review_count,
    )
