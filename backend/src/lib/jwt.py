"""JWT token generation and validation utilities.

Uses the algorithm and secret from settings.
Access tokens carry the standard claims (exp, iat, sub) plus a custom role claim.
Purpose tokens (email verification, file downloads) carry a `purpose` claim and
are rejected anywhere else.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import InvalidTokenError

from src.lib.settings import settings


ACCESS_PURPOSE = "access"
EMAIL_VERIFY_PURPOSE = "email_verify"
FILE_DOWNLOAD_PURPOSE = "file_download"


def _encode(claims: Dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,  # Issued at
        "exp": now + expires_delta,  # Expiration time
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token for a user.

    Args:
        user_id: UUID of the user (stored in 'sub' claim)
        role: customer, provider or admin
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token("123e4567-e89b-12d3-a456-426614174000", "customer")
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiration_minutes)

    return _encode(
        {"sub": str(user_id), "role": role, "purpose": ACCESS_PURPOSE},
        expires_delta,
    )


def create_purpose_token(
    subject: str,
    purpose: str,
    expires_delta: timedelta,
    **claims: Any,
) -> str:
    """Create a short-lived single-purpose token (verification link, download URL)."""
    return _encode({"sub": str(subject), "purpose": purpose, **claims}, expires_delta)


def verify_token(token: str, purpose: str = ACCESS_PURPOSE) -> dict:
    """Verify and decode a JWT token.

    Args:
        token: JWT token string to verify
        purpose: Purpose the token must have been issued for

    Returns:
        Decoded token payload with claims

    Raises:
        InvalidTokenError: If token is invalid, expired, signed with another key,
            or issued for another purpose
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
    )
    if payload.get("purpose", ACCESS_PURPOSE) != purpose:
        raise InvalidTokenError(f"Token was not issued for {purpose}")
    return payload


def get_user_from_token(token: str) -> tuple[str, str]:
    """Extract user_id and role from an access token.

    Raises:
        InvalidTokenError: If token is invalid
        KeyError: If required claims are missing
    """
    payload = verify_token(token)
    return payload["sub"], payload["role"]
