"""
Booking model - service engagements between customers and providers.
"""
from datetime import date, datetime, time, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import (
    String,
    Integer,
    Date,
    Time,
    DateTime,
    ForeignKey,
    Uuid,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.lib.db import Base
from src.models.services import ServiceName


class BookingStatus(str, enum.Enum):
    """Booking status state machine."""
    REQUESTED = "requested"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.DECLINED, BookingStatus.COMPLETED})

# Allowed edges; anything not listed here is rejected
ALLOWED_TRANSITIONS = {
    BookingStatus.REQUESTED: frozenset({BookingStatus.ACCEPTED, BookingStatus.DECLINED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.DECLINED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


class Booking(Base):
    """
    Booking entity - one requested service engagement.
    State machine: requested → accepted → completed, or requested → declined.

    Customer and provider names/contacts are copied at creation and are never
    re-synced with the user records.
    """
    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Parties (immutable after creation)
    customer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("provider_profiles.provider_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Request details
    service: Mapped[ServiceName] = mapped_column(
        SQLEnum(ServiceName, name="service_name"),
        nullable=False,
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    scheduled_time: Mapped[time] = mapped_column(Time, nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus, name="booking_status"),
        nullable=False,
        default=BookingStatus.REQUESTED,
        index=True,
    )

    # Rating (set once, after completion)
    customer_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        CheckConstraint(
            "customer_rating IS NULL OR (customer_rating >= 1 AND customer_rating <= 5)",
            name="booking_rating_range",
        ),
        CheckConstraint(
            "customer_rating IS NULL OR status = 'COMPLETED'",
            name="booking_rating_after_completion",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, customer_id={self.customer_id})>"
