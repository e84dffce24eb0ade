"""Identity service: accounts, sign-in and email verification.

Handles:
1. Email + password sign-up and sign-in
2. Google sign-in (account created on first use, merged by email otherwise)
3. Email verification links
4. Current identity lookup
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jwt.exceptions import InvalidTokenError
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.lib.jwt import EMAIL_VERIFY_PURPOSE, create_access_token, create_purpose_token, verify_token
from src.lib.logging import get_logger
from src.lib.metrics import get_metrics_collector
from src.lib.passwords import MIN_PASSWORD_LENGTH, hash_password, verify_password
from src.lib.settings import settings
from src.models.users import User, UserRole
from src.services.email_provider import EmailProvider, get_email_provider
from src.services.errors import (
    AuthenticationError,
    BadRequestException,
    EmailAlreadyRegisteredError,
    NotFoundError,
)
from src.services.google_identity import GoogleIdentityVerifier

logger = get_logger(__name__)

# Roles open to self-service sign-up; admins come from the seed script
SIGNUP_ROLES = (UserRole.CUSTOMER, UserRole.PROVIDER)

INVALID_CREDENTIALS = "Incorrect email or password."
GOOGLE_EMAIL_UNVERIFIED = "Your Google email is not verified. Sign in with your password instead."


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: User


def normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or domain.startswith(".") or domain.endswith("."):
        raise BadRequestException("Enter a valid email address.", details={"email": email})
    return email


def parse_signup_role(role) -> UserRole:
    try:
        resolved = role if isinstance(role, UserRole) else UserRole(str(role).strip().lower())
    except ValueError:
        resolved = None
    if resolved not in SIGNUP_ROLES:
        raise BadRequestException(
            "Accounts can be created as customer or provider.",
            details={"role": str(role)},
        )
    return resolved


class IdentityService:
    """Account and token management.

    Every method commits its own changes on the given session.
    """

    def __init__(
        self,
        session: Session,
        email_provider: Optional[EmailProvider] = None,
        google_verifier: Optional[GoogleIdentityVerifier] = None,
    ):
        self.session = session
        self._email_provider = email_provider
        self.google_verifier = google_verifier or GoogleIdentityVerifier()
        self.metrics = get_metrics_collector()

    @property
    def email_provider(self) -> EmailProvider:
        if self._email_provider is None:
            self._email_provider = get_email_provider()
        return self._email_provider

    def _find_by_email(self, email: str) -> Optional[User]:
        return self.session.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()

    def _issue(self, user: User) -> AuthResult:
        token = create_access_token(user_id=str(user.id), role=user.role.value)
        return AuthResult(token=token, user=user)

    async def sign_up(self, email: str, password: str, name: str, role) -> AuthResult:
        """Create an email + password account and send the verification email.

        Raises:
            BadRequestException: invalid email, short password, empty name or
                a role other than customer/provider
            EmailAlreadyRegisteredError: email already has an account
        """
        email = normalize_email(email)
        role = parse_signup_role(role)
        name = (name or "").strip()
        if not name:
            raise BadRequestException("Please enter your name.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise BadRequestException(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        if self._find_by_email(email) is not None:
            self.metrics.increment_auth_events("sign_up", outcome="conflict")
            raise EmailAlreadyRegisteredError(email)

        now = datetime.now(timezone.utc)
        user = User(
            email=email,
            name=name,
            role=role,
            password_hash=hash_password(password),
            email_verified=False,
            last_login_at=now,
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        self.metrics.increment_auth_events("sign_up")
        logger.info("Account created", extra={"user_id": str(user.id), "role": role.value})

        await self._send_verification(user)
        return self._issue(user)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Raises:
            AuthenticationError: unknown email, Google-only account or wrong password
        """
        try:
            email = normalize_email(email)
        except BadRequestException:
            raise AuthenticationError(INVALID_CREDENTIALS)

        user = self._find_by_email(email)
        if user is None or not user.password_hash or not verify_password(password or "", user.password_hash):
            self.metrics.increment_auth_events("sign_in", outcome="failure")
            logger.warning("Sign-in rejected", extra={"email": email})
            raise AuthenticationError(INVALID_CREDENTIALS)

        user.last_login_at = datetime.now(timezone.utc)
        self.session.commit()

        self.metrics.increment_auth_events("sign_in")
        return self._issue(user)

    async def sign_in_with_google(self, id_token: str, role=UserRole.CUSTOMER) -> AuthResult:
        """Sign in with a Google ID token.

        Looks the account up by Google subject, then by email. A matching email
        account is linked to the Google identity and keeps its role; with no
        match a new account is created with `role`.

        Raises:
            AuthenticationError: the email matches an existing account but
                Google has not verified it
        """
        role = parse_signup_role(role)
        identity = await self.google_verifier.verify(id_token)

        user = self.session.execute(
            select(User).where(User.google_subject == identity.subject)
        ).scalar_one_or_none()
        created = False

        if user is None:
            user = self._find_by_email(identity.email)
            if user is not None:
                if not identity.email_verified:
                    self.metrics.increment_auth_events("sign_in", method="google", outcome="failure")
                    logger.warning(
                        "Google link refused for unverified email",
                        extra={"user_id": str(user.id)},
                    )
                    raise AuthenticationError(GOOGLE_EMAIL_UNVERIFIED)
                user.google_subject = identity.subject
                logger.info("Google identity linked", extra={"user_id": str(user.id)})
            else:
                user = User(
                    email=identity.email,
                    name=identity.name,
                    role=role,
                    google_subject=identity.subject,
                )
                self.session.add(user)
                created = True

        if identity.email_verified:
            user.email_verified = True
        user.last_login_at = datetime.now(timezone.utc)
        self.session.commit()
        self.session.refresh(user)

        self.metrics.increment_auth_events("sign_up" if created else "sign_in", method="google")
        return self._issue(user)

    def verification_link(self, user: User) -> str:
        token = create_purpose_token(
            subject=str(user.id),
            purpose=EMAIL_VERIFY_PURPOSE,
            expires_delta=timedelta(minutes=settings.email_verification_ttl_minutes),
            email=user.email,
        )
        return f"{settings.frontend_base_url.rstrip('/')}/verify-email?token={token}"

    async def _send_verification(self, user: User) -> bool:
        sent = await self.email_provider.send_verification_email(
            user.email, user.name, self.verification_link(user)
        )
        self.metrics.increment_auth_events(
            "verification_sent", method="email", outcome="success" if sent else "failure"
        )
        return sent

    async def send_verification(self, user_id: UUID) -> bool:
        """Send a fresh verification link. Already-verified accounts are a no-op (False)."""
        user = self.get_user(user_id)
        if user.email_verified:
            return False
        return await self._send_verification(user)

    async def verify_email(self, token: str) -> User:
        """
        Raises:
            AuthenticationError: link invalid, expired or for another address
        """
        try:
            payload = verify_token(token, purpose=EMAIL_VERIFY_PURPOSE)
            user_id = UUID(payload["sub"])
        except (InvalidTokenError, KeyError, ValueError):
            self.metrics.increment_auth_events("verify_email", method="email", outcome="failure")
            raise AuthenticationError("This verification link is invalid or has expired.")

        user = self.session.get(User, user_id)
        if user is None or user.email != payload.get("email"):
            self.metrics.increment_auth_events("verify_email", method="email", outcome="failure")
            raise AuthenticationError("This verification link is invalid or has expired.")

        if not user.email_verified:
            user.email_verified = True
            self.session.commit()
            logger.info("Email verified", extra={"user_id": str(user.id)})
        self.metrics.increment_auth_events("verify_email", method="email")
        return user

    def get_user(self, user_id: UUID) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id, message="Account not found.")
        return user
