"""
Provider onboarding.

Flow:
1. A provider submits an application (status pending_verification)
2. They upload the required documents; once all are present the application
   moves to manual_review_pending
3. An admin sets the review status; approval creates or merges the
   provider's ProviderProfile and makes it eligible for discovery
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from src.lib.blob_store import LocalBlobStore, get_blob_store
from src.lib.db import SessionLocal
from src.lib.logging import get_logger
from src.lib.settings import settings
from src.lib.transactions import run_in_transaction
from src.models.provider_applications import (
    REQUIRED_DOCUMENTS,
    REVIEW_STATUSES,
    ApplicationStatus,
    Availability,
    DocumentKind,
    ProviderApplication,
)
from src.models.provider_profiles import ProviderProfile
from src.services.actor import Actor
from src.services.catalog import parse_service
from src.services.errors import (
    BadRequestException,
    InvalidServiceError,
    InvalidStateError,
    InvalidUploadError,
    NotFoundError,
    PermissionDeniedError,
    ValidationException,
)

logger = get_logger(__name__)

PHONE_PATTERN = re.compile(r"^\+?\d{8,15}$")

ALLOWED_CONTENT_TYPES = frozenset({
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
})

# Documents can still change while the application is open
UPLOAD_STATUSES = frozenset({
    ApplicationStatus.PENDING_VERIFICATION,
    ApplicationStatus.NEEDS_MORE_INFO,
    ApplicationStatus.MANUAL_REVIEW_PENDING,
})

CERTIFICATIONS_KEY = "certifications"

STATUS_LABELS: Dict[ApplicationStatus, Dict[str, str]] = {
    ApplicationStatus.PENDING_VERIFICATION: {
        "title": "Pending verification",
        "details": "Upload your ID, selfie, proof of address and consent form to continue.",
    },
    ApplicationStatus.MANUAL_REVIEW_PENDING: {
        "title": "Pending manual review",
        "details": "Your documents were received. Admin is reviewing your application.",
    },
    ApplicationStatus.NEEDS_MORE_INFO: {
        "title": "More information needed",
        "details": "Admin requested additional details. Please contact support to update your submission.",
    },
    ApplicationStatus.APPROVED: {
        "title": "Approved",
        "details": "You are approved and now active on Prime Care.",
    },
    ApplicationStatus.REJECTED: {
        "title": "Not approved",
        "details": "Your application was not approved at this time.",
    },
}


def status_label(status: ApplicationStatus) -> Dict[str, str]:
    return STATUS_LABELS.get(
        status,
        {"title": str(status), "details": "Your application is being processed."},
    )


def sanitize_phone(raw: str) -> str:
    """Strip everything but digits, keeping one leading '+' if present."""
    kept = re.sub(r"[^\d+]", "", raw or "")
    digits = re.sub(r"\D", "", kept)
    return f"+{digits}" if kept.startswith("+") else digits


class ApplicationForm(BaseModel):
    """Raw application fields as submitted."""

    name: str = ""
    email: str = ""
    phone: str = ""
    service: str = ""
    experience: str = ""
    area: str = ""
    availability: str = ""
    insurance: str = ""
    business: str = ""
    bio: str = ""
    background_consent: bool = False
    terms_consent: bool = False


def validate_application(form: ApplicationForm) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Clean and check an application form.

    Returns:
        (cleaned values, field errors); errors is empty when the form is valid
    """
    name = form.name.strip()
    email = form.email.strip().lower()
    raw_phone = form.phone.strip()
    phone = sanitize_phone(raw_phone)
    experience = form.experience.strip()
    area = form.area.strip()
    insurance = form.insurance.strip().lower()

    errors: Dict[str, str] = {}
    if not name:
        errors["name"] = "Full name is required."
    if not email:
        errors["email"] = "Email address is required."
    if not raw_phone:
        errors["phone"] = "Phone number is required."
    elif not PHONE_PATTERN.match(phone):
        errors["phone"] = "Enter a valid phone number."

    service = None
    if not form.service.strip():
        errors["service"] = "Please select a service."
    else:
        try:
            service = parse_service(form.service)
        except InvalidServiceError:
            errors["service"] = "Please select a service."

    if not experience:
        errors["experience"] = "Experience is required."
    if not area:
        errors["area"] = "Service area is required."

    availability = None
    try:
        availability = Availability(form.availability.strip())
    except ValueError:
        errors["availability"] = "Please select availability."

    if insurance not in ("yes", "no"):
        errors["insurance"] = "Please select an option."
    if not form.background_consent:
        errors["background_consent"] = "Consent is required."
    if not form.terms_consent:
        errors["terms_consent"] = "Consent is required."

    cleaned = {
        "name": name,
        "email": email,
        "phone": phone,
        "service": service,
        "experience": experience,
        "area": area,
        "availability": availability,
        "has_insurance": insurance == "yes",
        "business": form.business.strip(),
        "bio": form.bio.strip(),
        "background_consent": form.background_consent,
        "terms_consent": form.terms_consent,
    }
    return cleaned, errors


def missing_documents(documents: Dict[str, Any]) -> List[DocumentKind]:
    return [kind for kind in REQUIRED_DOCUMENTS if not documents.get(kind.value)]


class ApplicationService:
    """Provider applications, document uploads and admin review."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        blob_store: Optional[LocalBlobStore] = None,
    ):
        self.session_factory = session_factory
        self._blob_store = blob_store

    @property
    def blob_store(self) -> LocalBlobStore:
        if self._blob_store is None:
            self._blob_store = get_blob_store()
        return self._blob_store

    def _read(self, fn):
        session = (self.session_factory or SessionLocal)()
        try:
            return fn(session)
        finally:
            session.close()

    # ===== Provider side =====

    def submit(self, actor: Actor, form: ApplicationForm) -> ProviderApplication:
        """
        Raises:
            PermissionDeniedError: caller is not a provider, or email unverified
            ValidationException: field errors (details.errors maps field -> message)
        """
        if not actor.is_provider:
            raise PermissionDeniedError("Only provider accounts can apply.")
        if not actor.email_verified:
            raise PermissionDeniedError("Please verify your email before applying.")

        cleaned, errors = validate_application(form)
        if errors:
            raise ValidationException("Please fix the highlighted fields.", errors=errors)

        def _submit(session: Session) -> ProviderApplication:
            application = ProviderApplication(
                provider_id=actor.user_id,
                documents={},
                status=ApplicationStatus.PENDING_VERIFICATION,
                created_at=datetime.now(timezone.utc),
                **cleaned,
            )
            session.add(application)
            session.flush()
            return application

        application = run_in_transaction(
            _submit, operation="submit_application", session_factory=self.session_factory
        )
        logger.info(
            "Provider application submitted",
            extra={
                "application_id": str(application.id),
                "provider_id": str(actor.user_id),
                "service": application.service.value,
            },
        )
        return application

    def upload_document(
        self,
        actor: Actor,
        application_id: UUID,
        kind,
        filename: str,
        content_type: str,
        data: bytes,
    ) -> ProviderApplication:
        """
        Store a document and attach it to the application.

        Certifications accumulate; every other kind replaces the previous
        upload. When all required documents are present, a pending application
        moves to manual_review_pending.
        """
        try:
            kind = DocumentKind(kind)
        except ValueError:
            raise InvalidUploadError(
                "Unknown document type.", details={"kind": str(kind)}
            )
        content_type = (content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidUploadError(
                "Upload a PDF or an image (JPEG, PNG, WEBP, HEIC).",
                details={"content_type": content_type},
            )
        if not data:
            raise InvalidUploadError("The uploaded file is empty.")
        if len(data) > settings.max_upload_bytes:
            raise InvalidUploadError(
                "The uploaded file is too large.",
                details={"size": len(data), "max_bytes": settings.max_upload_bytes},
            )

        def _check(session: Session) -> ProviderApplication:
            application = session.get(ProviderApplication, application_id)
            if application is None:
                raise NotFoundError("ProviderApplication", application_id, message="Application not found.")
            if application.provider_id != actor.user_id:
                raise PermissionDeniedError("You can only upload documents to your own application.")
            if application.status not in UPLOAD_STATUSES:
                raise InvalidStateError(
                    "This application is closed for uploads.",
                    details={"status": application.status.value},
                )
            return application

        self._read(_check)

        path = self.blob_store.build_path(
            f"applications/{application_id}/{kind.value}", filename, content_type
        )
        stored = self.blob_store.upload(path, data, content_type)
        entry = {
            "name": filename or kind.value,
            "path": stored.path,
            "content_type": stored.content_type,
            "size": stored.size,
        }

        def _attach(session: Session) -> ProviderApplication:
            application = _check(session)
            documents = dict(application.documents or {})
            if kind == DocumentKind.CERTIFICATION:
                documents[CERTIFICATIONS_KEY] = [*documents.get(CERTIFICATIONS_KEY, []), entry]
            else:
                documents[kind.value] = entry
            # reassign so the JSON column is flagged dirty
            application.documents = documents

            if (
                application.status == ApplicationStatus.PENDING_VERIFICATION
                and not missing_documents(documents)
            ):
                application.status = ApplicationStatus.MANUAL_REVIEW_PENDING
            return application

        try:
            application = run_in_transaction(
                _attach, operation="upload_document", session_factory=self.session_factory
            )
        except Exception:
            # nothing references the file once the attach is rolled back
            self.blob_store.delete(stored.path)
            raise
        logger.info(
            "Application document uploaded",
            extra={
                "application_id": str(application_id),
                "kind": kind.value,
                "size": stored.size,
                "status": application.status.value,
            },
        )
        return application

    def latest_for(self, actor: Actor) -> ProviderApplication:
        """The caller's most recent application."""

        def _latest(session: Session) -> Optional[ProviderApplication]:
            return session.execute(
                select(ProviderApplication)
                .where(ProviderApplication.provider_id == actor.user_id)
                .order_by(ProviderApplication.created_at.desc())
                .limit(1)
            ).scalar_one_or_none()

        application = self._read(_latest)
        if application is None:
            raise NotFoundError(
                "ProviderApplication",
                message="You have not submitted a provider application yet.",
            )
        return application

    # ===== Admin side =====

    def list_applications(
        self,
        actor: Actor,
        status: Optional[ApplicationStatus] = None,
    ) -> List[ProviderApplication]:
        """Applications newest-first, optionally filtered by status (admin only)."""
        if not actor.is_admin:
            raise PermissionDeniedError("Admin access required.")

        def _list(session: Session) -> List[ProviderApplication]:
            stmt = select(ProviderApplication)
            if status is not None:
                stmt = stmt.where(ProviderApplication.status == status)
            stmt = stmt.order_by(ProviderApplication.created_at.desc())
            return list(session.execute(stmt).scalars().all())

        return self._read(_list)

    def set_status(self, actor: Actor, application_id: UUID, status) -> ProviderApplication:
        """
        Record an admin review decision.

        approved creates the provider's profile or merges into the existing one
        (is_approved on, application service added, reputation untouched).
        Any other status turns is_approved off on an existing profile.
        """
        if not actor.is_admin:
            raise PermissionDeniedError("Admin access required.")
        try:
            status = ApplicationStatus(status)
        except ValueError:
            status = None
        if status not in REVIEW_STATUSES:
            raise BadRequestException(
                "Choose a valid review status.",
                details={"allowed": sorted(s.value for s in REVIEW_STATUSES)},
            )

        def _review(session: Session) -> ProviderApplication:
            application = session.execute(
                select(ProviderApplication)
                .where(ProviderApplication.id == application_id)
                .with_for_update()
            ).scalar_one_or_none()
            if application is None:
                raise NotFoundError("ProviderApplication", application_id, message="Application not found.")

            now = datetime.now(timezone.utc)
            application.status = status
            application.reviewed_at = now
            application.reviewed_by = actor.user_id

            profile = session.execute(
                select(ProviderProfile)
                .where(ProviderProfile.provider_id == application.provider_id)
                .with_for_update()
            ).scalar_one_or_none()

            if status == ApplicationStatus.APPROVED:
                if profile is None:
                    profile = ProviderProfile(
                        provider_id=application.provider_id,
                        display_name=application.name,
                        bio=application.bio,
                        created_at=now,
                    )
                    session.add(profile)
                profile.set_services({*profile.services, application.service})
                profile.is_approved = True
                profile.updated_at = now
            elif profile is not None and profile.is_approved:
                profile.is_approved = False
                profile.updated_at = now
            return application

        application = run_in_transaction(
            _review, operation="review_application", session_factory=self.session_factory
        )
        logger.info(
            "Provider application reviewed",
            extra={
                "application_id": str(application_id),
                "status": status.value,
                "reviewed_by": str(actor.user_id),
            },
        )
        return application

    def document_links(self, application: ProviderApplication) -> Dict[str, Any]:
        """Documents with signed download URLs in place of storage paths."""

        def _link(entry: Dict[str, Any]) -> Dict[str, Any]:
            return {
                "name": entry.get("name"),
                "content_type": entry.get("content_type"),
                "size": entry.get("size"),
                "url": self.blob_store.download_url(entry["path"], entry.get("content_type")),
            }

        links: Dict[str, Any] = {}
        for key, value in (application.documents or {}).items():
            if key == CERTIFICATIONS_KEY:
                links[key] = [_link(item) for item in value]
            elif value:
                links[key] = _link(value)
        return links
