"""
Shared fixtures.

The suite runs against a throwaway SQLite file; the environment is set before
any `src` module is imported so settings, engine and blob store pick it up.
"""
import os
import tempfile
from datetime import date, datetime, time, timezone
from uuid import uuid4

_TMP_DIR = tempfile.mkdtemp(prefix="primecare-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ["SUBSCRIPTION_POLL_SECONDS"] = "0.05"

import pytest
from fastapi.testclient import TestClient

import src.models  # noqa: F401  registers every table on Base.metadata
from src.lib.db import Base, engine, get_db_context
from src.lib.jwt import create_access_token
from src.lib.metrics import reset_metrics
from src.models.bookings import Booking, BookingStatus
from src.models.provider_profiles import ProviderProfile
from src.models.services import ServiceName
from src.models.users import User, UserRole
from src.services.actor import Actor


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clear_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def client():
    """Test client for FastAPI app."""
    from src.api.app import app

    return TestClient(app)


def make_user(role: UserRole, name: str = "", email: str = "", verified: bool = True) -> User:
    with get_db_context() as db:
        user = User(
            id=uuid4(),
            email=email or f"{uuid4().hex[:10]}@example.com",
            name=name or role.value.title(),
            role=role,
            email_verified=verified,
        )
        db.add(user)
    return user


def make_provider(
    name: str = "Provider",
    services=(ServiceName.HOME_CLEANING,),
    rating_total: int = 0,
    review_count: int = 0,
    rating: float = None,
    approved: bool = True,
    online: bool = True,
    accepting: bool = True,
) -> ProviderProfile:
    """Provider user plus profile. `rating` overrides the value derived from the totals."""
    user = make_user(UserRole.PROVIDER, name=name)
    with get_db_context() as db:
        profile = ProviderProfile(
            provider_id=user.id,
            display_name=name,
            bio="",
            is_approved=approved,
            is_online=online,
            accepting_bookings=accepting,
            rating_total=rating_total,
            review_count=review_count,
            rating=rating if rating is not None else (
                round(rating_total / review_count, 2) if review_count else 0.0
            ),
        )
        profile.set_services(services)
        db.add(profile)
    return profile


def make_booking(
    customer: User,
    provider: ProviderProfile,
    status: BookingStatus = BookingStatus.REQUESTED,
    service: ServiceName = ServiceName.HOME_CLEANING,
    customer_rating: int = None,
) -> Booking:
    now = datetime.now(timezone.utc)
    with get_db_context() as db:
        booking = Booking(
            id=uuid4(),
            customer_id=customer.id,
            customer_name=customer.name,
            customer_email=customer.email,
            provider_id=provider.provider_id,
            provider_name=provider.display_name,
            service=service,
            scheduled_date=date(2026, 11, 2),
            scheduled_time=time(10, 30),
            address="12 Harbor Street",
            status=status,
            customer_rating=customer_rating,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
    return booking


def actor_for(user_or_profile, role: UserRole = None) -> Actor:
    if isinstance(user_or_profile, ProviderProfile):
        return Actor(
            user_id=user_or_profile.provider_id,
            role=UserRole.PROVIDER,
            name=user_or_profile.display_name,
            email_verified=True,
        )
    return Actor.from_user(user_or_profile)


def auth_headers(user_id, role: UserRole) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user_id), role.value)}"}


@pytest.fixture
def customer():
    return make_user(UserRole.CUSTOMER, name="Dana Customer", email="dana@example.com")


@pytest.fixture
def other_customer():
    return make_user(UserRole.CUSTOMER, name="Omar Other", email="omar@example.com")


@pytest.fixture
def admin():
    return make_user(UserRole.ADMIN, name="Ada Admin", email="admin@example.com")


@pytest.fixture
def provider():
    return make_provider(name="Sparkle Cleaners")
