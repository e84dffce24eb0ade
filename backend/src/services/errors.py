"""Domain errors raised by the marketplace services.

Each error carries a message the UI can show as-is; the API layer renders
them through the AppException handlers.
"""
from typing import Any, Dict, Optional

from fastapi import status

from src.api.middleware.error_handler import (
    AppException,
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)


class InvalidServiceError(BadRequestException):
    code = "invalid_service"

    def __init__(self, service: str):
        super().__init__(
            f"'{service}' is not a service we offer.",
            details={"service": service},
        )


class NotFoundError(NotFoundException):
    """Accepts any id type (UUIDs included) for the details payload."""

    def __init__(self, resource: str, resource_id: Optional[Any] = None, message: Optional[str] = None):
        super().__init__(
            resource,
            str(resource_id) if resource_id is not None else None,
            message=message,
        )


class PermissionDeniedError(ForbiddenException):
    code = "permission_denied"


class InvalidStateError(ConflictException):
    code = "invalid_state"


class InvalidTransitionError(ConflictException):
    code = "invalid_transition"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"A {current} booking cannot be moved to {target}.",
            details={"current_status": current, "target_status": target},
        )


class AlreadyRatedError(ConflictException):
    code = "already_rated"

    def __init__(self, booking_id: Any):
        super().__init__(
            "Booking already rated.",
            details={"booking_id": str(booking_id)},
        )


class TransactionConflictError(ConflictException):
    code = "transaction_conflict"

    def __init__(self, attempts: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "The record changed while we were saving. Please try again.",
            details={"attempts": attempts, **(details or {})},
        )


class IncompleteBookingError(ValidationException):
    code = "incomplete_booking"

    def __init__(self, missing: Dict[str, str]):
        super().__init__("Please complete every booking step.", errors=missing)


class AuthenticationError(UnauthorizedException):
    code = "authentication_failed"


class EmailAlreadyRegisteredError(ConflictException):
    code = "email_already_registered"

    def __init__(self, email: str):
        super().__init__(
            "An account with this email already exists.",
            details={"email": email},
        )


class InvalidUploadError(BadRequestException):
    code = "invalid_upload"


class IdentityProviderError(AppException):
    code = "identity_provider_unavailable"

    def __init__(self, message: str = "Google sign-in is unavailable right now. Please try again."):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY)
