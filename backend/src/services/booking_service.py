"""
Booking lifecycle.

State machine:
    requested → accepted → completed
    requested → declined
declined and completed are terminal. Only the booking's provider can move it.

Every transition re-reads the booking inside a transaction (row lock + version
check) and decides from that fresh state, so two racing provider actions
cannot both apply.
"""
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from src.lib.logging import get_logger
from src.lib.metrics import get_metrics_collector
from src.lib.transactions import run_in_transaction
from src.models.bookings import ALLOWED_TRANSITIONS, Booking, BookingStatus
from src.services.actor import Actor
from src.services.booking_wizard import BookingDraft
from src.services.discovery_service import DiscoveryService
from src.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)

logger = get_logger(__name__)


def check_transition(booking: Booking, actor: Actor, target: BookingStatus) -> None:
    """
    Guard for a provider-driven status change.

    Raises:
        PermissionDeniedError: actor is not the booking's provider
        InvalidTransitionError: target is not reachable from the current status
    """
    if actor.user_id != booking.provider_id:
        raise PermissionDeniedError(
            "Only the assigned provider can update this booking.",
            details={"booking_id": str(booking.id)},
        )
    if target not in ALLOWED_TRANSITIONS[booking.status]:
        raise InvalidTransitionError(booking.status.value, target.value)


class BookingService:
    """Creates bookings and applies provider transitions."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory
        self.metrics = get_metrics_collector()

    def create_booking(self, actor: Actor, draft: BookingDraft) -> Booking:
        """
        Create a booking in `requested` state from a completed wizard draft.

        The provider must be a current discovery candidate for the service.
        Names and contact details are copied from the actor and profile as they
        are right now.

        Raises:
            PermissionDeniedError: actor is not a customer
            IncompleteBookingError: a wizard step is missing data
            NotFoundError: provider is not available for this service
        """
        if not actor.is_customer:
            raise PermissionDeniedError("Only customer accounts can book services.")
        draft.require_complete()

        def _create(session: Session) -> Booking:
            provider = DiscoveryService(session).find_candidate(draft.service, draft.provider_id)
            if provider is None:
                raise NotFoundError(
                    "Provider",
                    draft.provider_id,
                    message="This provider is not available for the selected service.",
                )

            now = datetime.now(timezone.utc)
            booking = Booking(
                customer_id=actor.user_id,
                customer_name=actor.name or "Customer",
                customer_email=actor.email or "",
                provider_id=provider.provider_id,
                provider_name=provider.display_name,
                service=draft.service,
                scheduled_date=draft.scheduled_date,
                scheduled_time=draft.scheduled_time,
                address=draft.address,
                notes=draft.notes or None,
                status=BookingStatus.REQUESTED,
                created_at=now,
                updated_at=now,
            )
            session.add(booking)
            session.flush()
            return booking

        booking = run_in_transaction(
            _create, operation="create_booking", session_factory=self.session_factory
        )
        self.metrics.increment_bookings_created(booking.service.value)
        logger.info(
            "Booking requested",
            extra={
                "booking_id": str(booking.id),
                "customer_id": str(booking.customer_id),
                "provider_id": str(booking.provider_id),
                "service": booking.service.value,
            },
        )
        return booking

    def transition(self, booking_id: UUID, actor: Actor, target: BookingStatus) -> Booking:
        """
        Move a booking to `target`, atomically.

        Only updated_at changes besides status. On any failure the stored
        booking is untouched.
        """

        def _apply(session: Session) -> Booking:
            booking = session.execute(
                select(Booking).where(Booking.id == booking_id).with_for_update()
            ).scalar_one_or_none()
            if booking is None:
                raise NotFoundError("Booking", booking_id, message="Booking not found.")

            check_transition(booking, actor, target)
            booking.status = target
            booking.updated_at = datetime.now(timezone.utc)
            return booking

        try:
            booking = run_in_transaction(
                _apply, operation=f"booking_{target.value}", session_factory=self.session_factory
            )
        except PermissionDeniedError:
            self.metrics.increment_transitions(target.value, outcome="denied")
            raise
        except InvalidTransitionError:
            self.metrics.increment_transitions(target.value, outcome="invalid")
            raise

        self.metrics.increment_transitions(target.value)
        logger.info(
            "Booking status changed",
            extra={"booking_id": str(booking_id), "status": target.value},
        )
        return booking

    def accept(self, booking_id: UUID, actor: Actor) -> Booking:
        return self.transition(booking_id, actor, BookingStatus.ACCEPTED)

    def decline(self, booking_id: UUID, actor: Actor) -> Booking:
        return self.transition(booking_id, actor, BookingStatus.DECLINED)

    def complete(self, booking_id: UUID, actor: Actor) -> Booking:
        return self.transition(booking_id, actor, BookingStatus.COMPLETED)


def customer_bookings_query(customer_id: UUID):
    return (
        select(Booking)
        .where(Booking.customer_id == customer_id)
        .order_by(Booking.created_at.desc())
    )


def provider_bookings_query(provider_id: UUID, status: Optional[BookingStatus] = None):
    stmt = select(Booking).where(Booking.provider_id == provider_id)
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    return stmt.order_by(Booking.created_at.desc())


def list_customer_bookings(session: Session, customer_id: UUID) -> List[Booking]:
    return list(session.execute(customer_bookings_query(customer_id)).scalars().all())


def list_provider_bookings(
    session: Session,
    provider_id: UUID,
    status: Optional[BookingStatus] = None,
) -> List[Booking]:
    return list(session.execute(provider_bookings_query(provider_id, status)).scalars().all())
