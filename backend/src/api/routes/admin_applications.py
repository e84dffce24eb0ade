"""
Admin review console routes.

- GET  /admin/applications: All applications, newest first
- POST /admin/applications/{application_id}/status: Set the review status
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from src.api.dependencies import require_admin
from src.api.routes.provider_applications import ApplicationResponse
from src.models.provider_applications import ApplicationStatus
from src.services.actor import Actor
from src.services.application_service import ApplicationService


class ReviewRequest(BaseModel):
    status: str = Field(
        ...,
        description="manual_review_pending, approved, needs_more_info or rejected",
    )


router = APIRouter(prefix="/admin/applications", tags=["admin"])


@router.get("", response_model=List[ApplicationResponse])
def list_applications(
    status: Optional[ApplicationStatus] = Query(None, description="Filter by status"),
    actor: Actor = Depends(require_admin),
):
    service = ApplicationService()
    return [
        ApplicationResponse.build(application, service)
        for application in service.list_applications(actor, status)
    ]


@router.post("/{application_id}/status", response_model=ApplicationResponse)
def set_application_status(
    application_id: UUID,
    request: ReviewRequest,
    actor: Actor = Depends(require_admin),
):
    """
    Approving creates or re-activates the provider's profile; any other status
    takes the provider out of discovery.
    """
    service = ApplicationService()
    application = service.set_status(actor, application_id, request.status)
    return ApplicationResponse.build(application, service)
