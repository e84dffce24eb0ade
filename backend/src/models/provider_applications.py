"""
Provider application model - onboarding submissions reviewed by admins.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Uuid, JSON, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.lib.db import Base
from src.models.services import ServiceName


class ApplicationStatus(str, enum.Enum):
    """Review status of a provider application."""
    PENDING_VERIFICATION = "pending_verification"
    MANUAL_REVIEW_PENDING = "manual_review_pending"
    APPROVED = "approved"
    NEEDS_MORE_INFO = "needs_more_info"
    REJECTED = "rejected"


# Statuses an admin can set from the review console
REVIEW_STATUSES = frozenset({
    ApplicationStatus.MANUAL_REVIEW_PENDING,
    ApplicationStatus.APPROVED,
    ApplicationStatus.NEEDS_MORE_INFO,
    ApplicationStatus.REJECTED,
})


class DocumentKind(str, enum.Enum):
    """Document slots on an application."""
    ID_DOCUMENT = "id_document"
    SELFIE = "selfie"
    PROOF_OF_ADDRESS = "proof_of_address"
    CONSENT_FORM = "consent_form"
    CERTIFICATION = "certification"


REQUIRED_DOCUMENTS = (
    DocumentKind.ID_DOCUMENT,
    DocumentKind.SELFIE,
    DocumentKind.PROOF_OF_ADDRESS,
    DocumentKind.CONSENT_FORM,
)


class Availability(str, enum.Enum):
    WEEKDAYS = "Weekdays"
    WEEKENDS = "Weekends"
    EVENINGS = "Evenings"
    FLEXIBLE = "Flexible"
    FULL_TIME = "Full-time"


class ProviderApplication(Base):
    """
    ProviderApplication entity.

    documents layout:
        {"id_document": {"name", "path", "content_type", "size"}, ...,
         "certifications": [{...}, ...]}
    """
    __tablename__ = "provider_applications"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Applicant details
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    service: Mapped[ServiceName] = mapped_column(
        SQLEnum(ServiceName, name="service_name"),
        nullable=False,
    )
    experience: Mapped[str] = mapped_column(String(255), nullable=False)
    area: Mapped[str] = mapped_column(String(255), nullable=False)
    availability: Mapped[Availability] = mapped_column(
        SQLEnum(Availability, name="provider_availability"),
        nullable=False,
    )
    has_insurance: Mapped[bool] = mapped_column(Boolean, nullable=False)
    business: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    bio: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    background_consent: Mapped[bool] = mapped_column(Boolean, nullable=False)
    terms_consent: Mapped[bool] = mapped_column(Boolean, nullable=False)

    documents: Mapped[dict] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=dict,
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING_VERIFICATION,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reviewed_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ProviderApplication(id={self.id}, provider_id={self.provider_id}, status={self.status})>"
