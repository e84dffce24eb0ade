"""
Provider onboarding routes.

- POST /provider/applications: Submit an application
- POST /provider/applications/{application_id}/documents/{kind}: Upload a document
- GET  /provider/applications/me: Latest application and its status label
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel

from src.api.dependencies import require_provider
from src.models.provider_applications import ProviderApplication
from src.services.actor import Actor
from src.services.application_service import (
    ApplicationForm,
    ApplicationService,
    missing_documents,
    status_label,
)


# Pydantic schemas
class StatusLabel(BaseModel):
    title: str
    details: str


class ApplicationResponse(BaseModel):
    id: UUID
    provider_id: UUID
    name: str
    email: str
    phone: str
    service: str
    experience: str
    area: str
    availability: str
    has_insurance: bool
    business: str
    bio: str
    status: str
    status_label: StatusLabel
    missing_documents: List[str]
    documents: Dict[str, Any]
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[UUID] = None

    @classmethod
    def build(cls, application: ProviderApplication, service: ApplicationService) -> "ApplicationResponse":
        return cls(
            id=application.id,
            provider_id=application.provider_id,
            name=application.name,
            email=application.email,
            phone=application.phone,
            service=application.service.value,
            experience=application.experience,
            area=application.area,
            availability=application.availability.value,
            has_insurance=application.has_insurance,
            business=application.business,
            bio=application.bio,
            status=application.status.value,
            status_label=StatusLabel(**status_label(application.status)),
            missing_documents=[k.value for k in missing_documents(application.documents or {})],
            documents=service.document_links(application),
            created_at=application.created_at,
            reviewed_at=application.reviewed_at,
            reviewed_by=application.reviewed_by,
        )


# Router
router = APIRouter(prefix="/provider/applications", tags=["provider onboarding"])


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def submit_application(
    form: ApplicationForm,
    actor: Actor = Depends(require_provider),
):
    """
    Raises:
        403: Email not verified
        422: Field errors in details.errors
    """
    service = ApplicationService()
    return ApplicationResponse.build(service.submit(actor, form), service)


@router.post(
    "/{application_id}/documents/{kind}",
    response_model=ApplicationResponse,
)
def upload_document(
    application_id: UUID,
    kind: str,
    file: UploadFile = File(...),
    actor: Actor = Depends(require_provider),
):
    """Upload one document (multipart field `file`). kind: id_document, selfie,
    proof_of_address, consent_form or certification."""
    data = file.file.read()
    service = ApplicationService()
    application = service.upload_document(
        actor,
        application_id,
        kind,
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=data,
    )
    return ApplicationResponse.build(application, service)


@router.get("/me", response_model=ApplicationResponse)
def my_application(actor: Actor = Depends(require_provider)):
    service = ApplicationService()
    return ApplicationResponse.build(service.latest_for(actor), service)
