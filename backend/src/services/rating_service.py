"""
Rating aggregation.

A customer rates a completed booking once. The rating is folded into the
provider's running average in the same transaction that marks the booking as
rated, so the profile and booking are updated together or not at all.

The profile keeps the exact integer sum of all ratings (rating_total) next to
the rounded average; the average is always recomputed from the sum, so
repeated folding does not accumulate rounding error.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from src.lib.logging import get_logger
from src.lib.metrics import get_metrics_collector
from src.lib.transactions import run_in_transaction
from src.models.bookings import Booking, BookingStatus
from src.models.provider_profiles import ProviderProfile
from src.services.actor import Actor
from src.services.errors import (
    AlreadyRatedError,
    BadRequestException,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5
_TWO_PLACES = Decimal("0.01")


def round_rating(total: int, count: int) -> float:
    """Mean of `count` ratings summing to `total`, half-up to 2 decimals (0 when empty)."""
    if count <= 0:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def fold_rating(rating_total: int, review_count: int, value: int) -> Tuple[float, int, int]:
    """
    Add one rating to a running aggregate.

    Returns:
        (new_average, new_count, new_total)
    """
    new_count = review_count + 1
    new_total = rating_total + value
    return round_rating(new_total, new_count), new_count, new_total


@dataclass(frozen=True)
class RatingResult:
    booking_id: UUID
    provider_id: UUID
    customer_rating: int
    rated_at: datetime
    provider_rating: float
    provider_review_count: int


class RatingService:
    """Applies customer ratings to provider profiles."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory
        self.metrics = get_metrics_collector()

    def rate_booking(self, booking_id: UUID, value: int, actor: Actor) -> RatingResult:
        """
        Rate a completed booking.

        Args:
            booking_id: Booking being rated
            value: Whole stars, 1-5
            actor: Caller; must be the booking's customer

        Raises:
            BadRequestException: value outside 1-5
            NotFoundError: booking or provider profile missing
            PermissionDeniedError: caller is not the booking's customer
            InvalidStateError: booking is not completed
            AlreadyRatedError: booking already carries a rating
            TransactionConflictError: kept losing to concurrent commits
        """
        if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
            raise BadRequestException(
                f"Rating must be a whole number from {MIN_RATING} to {MAX_RATING}.",
                details={"rating": value},
            )

        def _rate(session: Session) -> RatingResult:
            booking = session.execute(
                select(Booking).where(Booking.id == booking_id).with_for_update()
            ).scalar_one_or_none()
            if booking is None:
                raise NotFoundError("Booking", booking_id, message="Booking not found.")
            if booking.customer_id != actor.user_id:
                raise PermissionDeniedError(
                    "You are not allowed to rate this booking.",
                    details={"booking_id": str(booking_id)},
                )
            if booking.status != BookingStatus.COMPLETED:
                raise InvalidStateError(
                    "You can only rate completed bookings.",
                    details={"booking_id": str(booking_id), "status": booking.status.value},
                )
            if booking.customer_rating is not None:
                raise AlreadyRatedError(booking_id)

            profile = session.execute(
                select(ProviderProfile)
                .where(ProviderProfile.provider_id == booking.provider_id)
                .with_for_update()
            ).scalar_one_or_none()
            if profile is None:
                raise NotFoundError(
                    "ProviderProfile",
                    booking.provider_id,
                    message="Provider profile not found.",
                )

            new_average, new_count, new_total = fold_rating(
                profile.rating_total, profile.review_count, value
            )
            now = datetime.now(timezone.utc)

            profile.rating = new_average
            profile.review_count = new_count
            profile.rating_total = new_total
            profile.updated_at = now

            booking.customer_rating = value
            booking.rated_at = now
            booking.updated_at = now

            return RatingResult(
                booking_id=booking.id,
                provider_id=profile.provider_id,
                customer_rating=value,
                rated_at=now,
                provider_rating=new_average,
                provider_review_count=new_count,
            )

        result = run_in_transaction(
            _rate, operation="rate_booking", session_factory=self.session_factory
        )

        self.metrics.increment_ratings(value)
        logger.info(
            "Booking rated",
            extra={
                "booking_id": str(result.booking_id),
                "provider_id": str(result.provider_id),
                "stars": value,
                "provider_rating": result.provider_rating,
                "review_count": result.provider_review_count,
            },
        )
        return result
