"""
Provider profile model - public booking-eligibility and reputation record.
"""
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from sqlalchemy import (
    String,
    Integer,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    Uuid,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.lib.db import Base
from src.models.services import ServiceName


class ProviderProfile(Base):
    """
    ProviderProfile entity (1:1 with a provider User).

    rating/review_count/rating_total are only written by the rating aggregator;
    rating_total keeps the exact sum so the rounded average never drifts.
    """
    __tablename__ = "provider_profiles"

    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[str] = mapped_column(String(2000), nullable=False, default="")

    # Availability
    accepting_bookings: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    # Reputation
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    offerings: Mapped[List["ProviderServiceOffering"]] = relationship(
        back_populates="profile",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        CheckConstraint("review_count >= 0", name="provider_review_count_non_negative"),
        CheckConstraint("rating >= 0 AND rating <= 5", name="provider_rating_range"),
    )

    @property
    def services(self) -> List[ServiceName]:
        return sorted((o.service for o in self.offerings), key=lambda s: s.value)

    def set_services(self, services) -> None:
        """Replace the offered services, keeping rows that did not change."""
        wanted = set(services)
        self.offerings = [o for o in self.offerings if o.service in wanted]
        existing = {o.service for o in self.offerings}
        for service in sorted(wanted - existing, key=lambda s: s.value):
            self.offerings.append(ProviderServiceOffering(service=service))

    def __repr__(self) -> str:
        return (
            f"<ProviderProfile(provider_id={self.provider_id}, rating={self.rating}, "
            f"reviews={self.review_count})>"
        )


class ProviderServiceOffering(Base):
    """One service a provider offers; lets discovery filter in the database."""
    __tablename__ = "provider_services"

    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("provider_profiles.provider_id", ondelete="CASCADE"),
        primary_key=True,
    )
    service: Mapped[ServiceName] = mapped_column(
        SQLEnum(ServiceName, name="service_name"),
        primary_key=True,
        index=True,
    )

    profile: Mapped[ProviderProfile] = relationship(back_populates="offerings")

    def __repr__(self) -> str:
        return f"<ProviderServiceOffering(provider_id={self.provider_id}, service={self.service})>"
