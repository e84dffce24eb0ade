"""
Integration tests for authentication routes.
"""
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi import Depends
from sqlalchemy.orm import Session

from conftest import auth_headers
from src.api.app import app
from src.api.routes.auth import get_identity_service
from src.lib.db import get_db
from src.lib.jwt import create_access_token
from src.models.users import UserRole
from src.services.errors import AuthenticationError, IdentityProviderError
from src.services.google_identity import GoogleIdentity
from src.services.identity_service import IdentityService


@pytest.fixture
def outbox():
    provider = MagicMock()
    provider.send_verification_email = AsyncMock(return_value=True)
    return provider


@pytest.fixture
def google():
    return MagicMock()


@pytest.fixture
def api(client, outbox, google):
    """Client whose identity service records emails and uses a fake Google verifier."""

    def override(db: Session = Depends(get_db)) -> IdentityService:
        return IdentityService(db, email_provider=outbox, google_verifier=google)

    app.dependency_overrides[get_identity_service] = override
    yield client
    app.dependency_overrides.pop(get_identity_service, None)


def sign_up(api, email="dana@example.com", role="customer"):
    return api.post(
        "/auth/sign-up",
        json={"email": email, "password": "s3cret-pass", "name": "Dana", "role": role},
    )


@pytest.mark.integration
def test_sign_up_returns_token_and_identity(api, outbox):
    response = sign_up(api, email="Dana@Example.com", role="provider")

    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["user"]["email"] == "dana@example.com"
    assert data["user"]["role"] == "provider"
    assert data["user"]["email_verified"] is False
    outbox.send_verification_email.assert_awaited_once()


@pytest.mark.integration
def test_sign_up_duplicate_email(api):
    sign_up(api)

    response = sign_up(api)

    assert response.status_code == 409
    assert response.json()["code"] == "email_already_registered"


@pytest.mark.integration
@pytest.mark.parametrize(
    "payload",
    [
        {"email": "dana@example.com", "password": "short", "name": "Dana"},
        {"email": "not-an-email", "password": "s3cret-pass", "name": "Dana"},
        {"email": "dana@example.com", "password": "s3cret-pass", "name": "Dana", "role": "admin"},
    ],
)
def test_sign_up_rejects_bad_input(api, payload):
    response = api.post("/auth/sign-up", json=payload)

    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.integration
def test_sign_in_and_me(api):
    sign_up(api)

    response = api.post("/auth/sign-in", json={"email": "dana@example.com", "password": "s3cret-pass"})

    assert response.status_code == 200
    token = response.json()["token"]
    me = api.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "dana@example.com"
    assert me.json()["role"] == "customer"


@pytest.mark.integration
def test_sign_in_wrong_password(api):
    sign_up(api)

    response = api.post("/auth/sign-in", json={"email": "dana@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["error"] == "Incorrect email or password."


@pytest.mark.integration
def test_me_requires_token(client):
    response = client.get("/auth/me")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.integration
def test_me_rejects_bad_and_orphaned_tokens(client):
    assert client.get("/auth/me", headers={"Authorization": "Bearer junk"}).status_code == 401

    orphan = create_access_token("123e4567-e89b-12d3-a456-426614174000", "customer")
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {orphan}"})
    assert response.status_code == 401


@pytest.mark.integration
def test_verify_email_flow(api, outbox):
    token = sign_up(api).json()["token"]
    link = outbox.send_verification_email.await_args.args[2]
    link_token = parse_qs(urlparse(link).query)["token"][0]

    response = api.post("/auth/verify-email", json={"token": link_token})

    assert response.status_code == 200
    assert response.json()["email_verified"] is True
    again = api.post("/auth/send-verification", headers={"Authorization": f"Bearer {token}"})
    assert again.json()["message"] == "Email already verified"


@pytest.mark.integration
def test_verify_email_bad_token(api):
    response = api.post("/auth/verify-email", json={"token": "nope"})

    assert response.status_code == 401


@pytest.mark.integration
def test_send_verification(api, outbox):
    token = sign_up(api).json()["token"]
    outbox.send_verification_email.reset_mock()

    response = api.post("/auth/send-verification", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["message"] == "Verification email sent"
    outbox.send_verification_email.assert_awaited_once()


@pytest.mark.integration
def test_google_sign_in(api, google):
    google.verify = AsyncMock(
        return_value=GoogleIdentity(subject="g-1", email="gina@example.com", email_verified=True, name="Gina")
    )

    response = api.post("/auth/google", json={"id_token": "id-token", "role": "provider"})

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["role"] == "provider"
    assert user["email_verified"] is True


@pytest.mark.integration
@pytest.mark.parametrize(
    "error,status_code",
    [(AuthenticationError("Google sign-in failed. Please try again."), 401), (IdentityProviderError(), 502)],
)
def test_google_sign_in_failures(api, google, error, status_code):
    google.verify = AsyncMock(side_effect=error)

    response = api.post("/auth/google", json={"id_token": "id-token"})

    assert response.status_code == status_code


@pytest.mark.integration
def test_sign_out(client, customer):
    response = client.post("/auth/sign-out", headers=auth_headers(customer.id, UserRole.CUSTOMER))

    assert response.status_code == 200
    assert response.json() == {"message": "Signed out"}
