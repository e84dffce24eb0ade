"""Google ID-token verification against Google's tokeninfo endpoint."""
from dataclasses import dataclass
from typing import Optional

import httpx

from src.lib.logging import get_logger
from src.lib.settings import settings
from src.services.errors import AuthenticationError, IdentityProviderError

logger = get_logger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(frozen=True)
class GoogleIdentity:
    subject: str
    email: str
    email_verified: bool
    name: str


class GoogleIdentityVerifier:
    """Validates an ID token issued to this app's OAuth client."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        tokeninfo_url: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.tokeninfo_url = tokeninfo_url or settings.google_tokeninfo_url
        self.timeout = timeout

    async def verify(self, id_token: str) -> GoogleIdentity:
        """
        Verify `id_token` and return the identity it asserts.

        Raises:
            AuthenticationError: token rejected, wrong audience or issuer
            IdentityProviderError: Google could not be reached, or no client id is configured
        """
        self._require_client_id()
        if not id_token:
            raise AuthenticationError("Google sign-in failed. Please try again.")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.tokeninfo_url, params={"id_token": id_token})
        except httpx.HTTPError as e:
            logger.error("Google tokeninfo request failed", extra={"error": str(e)})
            raise IdentityProviderError() from e

        if response.status_code >= 500:
            logger.error(
                "Google tokeninfo unavailable",
                extra={"status_code": response.status_code},
            )
            raise IdentityProviderError()
        if response.status_code >= 400:
            raise AuthenticationError("Google sign-in failed. Please try again.")

        claims = response.json()
        return self.parse_claims(claims)

    def _require_client_id(self) -> None:
        # aud is always compared; an unset client id matches nothing
        if not self.client_id:
            logger.error("Google sign-in attempted without GOOGLE_CLIENT_ID configured")
            raise IdentityProviderError("Google sign-in is not configured.")

    def parse_claims(self, claims: dict) -> GoogleIdentity:
        self._require_client_id()
        if claims.get("aud") != self.client_id:
            logger.warning("Google token audience mismatch", extra={"aud": claims.get("aud")})
            raise AuthenticationError("Google sign-in failed. Please try again.")
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise AuthenticationError("Google sign-in failed. Please try again.")

        subject = claims.get("sub")
        email = (claims.get("email") or "").strip().lower()
        if not subject or not email:
            raise AuthenticationError("Google account has no email address.")

        # tokeninfo returns booleans as strings
        verified = str(claims.get("email_verified", "false")).lower() == "true"
        return GoogleIdentity(
            subject=subject,
            email=email,
            email_verified=verified,
            name=claims.get("name") or email.split("@")[0],
        )
