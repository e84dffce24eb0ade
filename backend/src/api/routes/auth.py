"""Authentication routes.

Provides account endpoints:
- POST /auth/sign-up: Create an email + password account
- POST /auth/sign-in: Exchange email + password for a JWT
- POST /auth/google: Sign in with a Google ID token
- POST /auth/send-verification: Re-send the verification email
- POST /auth/verify-email: Consume a verification link token
- GET  /auth/me: Current identity
- POST /auth/sign-out: Acknowledge sign-out (tokens are stateless)
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.lib.db import get_db
from src.models.users import User
from src.services.identity_service import AuthResult, IdentityService


router = APIRouter(prefix="/auth", tags=["Authentication"])


# Request/Response Models
class SignUpRequest(BaseModel):
    email: str = Field(..., examples=["user@example.com"])
    password: str = Field(..., description="At least 8 characters")
    name: str = Field(..., description="Full name")
    role: str = Field(default="customer", description="customer or provider")


class SignInRequest(BaseModel):
    email: str
    password: str


class GoogleSignInRequest(BaseModel):
    id_token: str = Field(..., description="Google ID token from the browser sign-in flow")
    role: str = Field(default="customer", description="Role for a newly created account")


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., description="Token from the verification link")


class IdentityResponse(BaseModel):
    """Current-identity snapshot."""
    id: UUID
    name: str
    email: str
    email_verified: bool
    role: str

    @classmethod
    def from_user(cls, user: User) -> "IdentityResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            email_verified=user.email_verified,
            role=user.role.value,
        )


class AuthResponse(BaseModel):
    """JWT token plus the identity it belongs to."""
    token: str = Field(..., description="JWT access token")
    user: IdentityResponse

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(token=result.token, user=IdentityResponse.from_user(result.user))


class MessageResponse(BaseModel):
    message: str


# Dependency to get IdentityService
def get_identity_service(db: Session = Depends(get_db)) -> IdentityService:
    """Get IdentityService instance with database session."""
    return IdentityService(db)


# Routes
@router.post(
    "/sign-up",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
)
async def sign_up(
    request: SignUpRequest,
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Create a customer or provider account and send the verification email.

    Raises:
        400: Invalid email, short password or role
        409: Email already registered
    """
    result = await identity_service.sign_up(
        request.email, request.password, request.name, request.role
    )
    return AuthResponse.from_result(result)


@router.post("/sign-in", response_model=AuthResponse, summary="Sign in")
async def sign_in(
    request: SignInRequest,
    identity_service: IdentityService = Depends(get_identity_service),
):
    result = await identity_service.sign_in(request.email, request.password)
    return AuthResponse.from_result(result)


@router.post("/google", response_model=AuthResponse, summary="Sign in with Google")
async def sign_in_with_google(
    request: GoogleSignInRequest,
    identity_service: IdentityService = Depends(get_identity_service),
):
    """Verify the Google ID token; creates the account on first use.

    Raises:
        401: Token rejected
        502: Google unreachable
    """
    result = await identity_service.sign_in_with_google(request.id_token, request.role)
    return AuthResponse.from_result(result)


@router.post("/send-verification", response_model=MessageResponse)
async def send_verification(
    user: User = Depends(get_current_user),
    identity_service: IdentityService = Depends(get_identity_service),
):
    sent = await identity_service.send_verification(user.id)
    if not sent and user.email_verified:
        return MessageResponse(message="Email already verified")
    if not sent:
        return MessageResponse(message="We could not send the email. Please try again.")
    return MessageResponse(message="Verification email sent")


@router.post("/verify-email", response_model=IdentityResponse)
async def verify_email(
    request: VerifyEmailRequest,
    identity_service: IdentityService = Depends(get_identity_service),
):
    user = await identity_service.verify_email(request.token)
    return IdentityResponse.from_user(user)


@router.get("/me", response_model=IdentityResponse, summary="Current identity")
def me(user: User = Depends(get_current_user)):
    return IdentityResponse.from_user(user)


@router.post("/sign-out", response_model=MessageResponse)
def sign_out(user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Signed out")
