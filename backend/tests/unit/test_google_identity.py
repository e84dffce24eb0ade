"""Tests for Google ID-token verification."""
import functools

import httpx
import pytest

from src.services.errors import AuthenticationError, IdentityProviderError
from src.services.google_identity import GoogleIdentityVerifier

CLIENT_ID = "test-client.apps.googleusercontent.com"
TOKENINFO_URL = "https://oauth2.example.test/tokeninfo"


def claims(**overrides):
    base = {
        "aud": CLIENT_ID,
        "iss": "https://accounts.google.com",
        "sub": "1098765",
        "email": "Gina@Example.com",
        "email_verified": "true",
        "name": "Gina G",
    }
    base.update(overrides)
    return base


@pytest.fixture
def verifier():
    return GoogleIdentityVerifier(client_id=CLIENT_ID, tokeninfo_url=TOKENINFO_URL)


@pytest.fixture
def tokeninfo(monkeypatch):
    """Route the verifier's AsyncClient to a handler; returns the list of requests seen."""
    seen = []

    def install(handler):
        def record(request):
            seen.append(request)
            return handler(request)

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            functools.partial(real_client, transport=httpx.MockTransport(record)),
        )
        return seen

    return install


@pytest.mark.asyncio
async def test_valid_token(verifier, tokeninfo):
    seen = tokeninfo(lambda request: httpx.Response(200, json=claims()))

    identity = await verifier.verify("id-token-123")

    assert identity.subject == "1098765"
    assert identity.email == "gina@example.com"
    assert identity.email_verified is True
    assert identity.name == "Gina G"
    assert seen[0].url.params["id_token"] == "id-token-123"
    assert str(seen[0].url).startswith(TOKENINFO_URL)


@pytest.mark.asyncio
async def test_rejected_token(verifier, tokeninfo):
    tokeninfo(lambda request: httpx.Response(400, json={"error": "invalid_token"}))

    with pytest.raises(AuthenticationError):
        await verifier.verify("expired")


@pytest.mark.asyncio
async def test_google_outage(verifier, tokeninfo):
    tokeninfo(lambda request: httpx.Response(503))

    with pytest.raises(IdentityProviderError):
        await verifier.verify("id-token")


@pytest.mark.asyncio
async def test_network_error(verifier, tokeninfo):
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)

    tokeninfo(boom)

    with pytest.raises(IdentityProviderError):
        await verifier.verify("id-token")


@pytest.mark.asyncio
async def test_empty_token_is_not_sent(verifier, tokeninfo):
    seen = tokeninfo(lambda request: httpx.Response(200, json=claims()))

    with pytest.raises(AuthenticationError):
        await verifier.verify("")
    assert seen == []


@pytest.mark.unit
@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "someone-else.apps.googleusercontent.com"},
        {"iss": "https://evil.example.com"},
        {"email": ""},
        {"sub": None},
    ],
)
def test_claims_rejected(verifier, overrides):
    with pytest.raises(AuthenticationError):
        verifier.parse_claims(claims(**overrides))


@pytest.mark.unit
def test_claims_defaults(verifier):
    identity = verifier.parse_claims(claims(email_verified="false", name=None, iss="accounts.google.com"))

    assert identity.email_verified is False
    assert identity.name == "gina"


@pytest.mark.unit
@pytest.mark.parametrize("aud", ["some-other-app.apps.googleusercontent.com", "", None])
def test_claims_rejected_without_client_id(aud):
    with pytest.raises(IdentityProviderError):
        GoogleIdentityVerifier(client_id="").parse_claims(claims(aud=aud))


@pytest.mark.asyncio
async def test_verify_without_client_id_sends_nothing(tokeninfo):
    seen = tokeninfo(lambda request: httpx.Response(200, json=claims(aud="some-other-app")))
    verifier = GoogleIdentityVerifier(client_id="", tokeninfo_url=TOKENINFO_URL)

    with pytest.raises(IdentityProviderError) as exc_info:
        await verifier.verify("id-token")

    assert exc_info.value.status_code == 502
    assert seen == []
