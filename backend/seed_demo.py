"""
Seed an admin account and a few approved demo providers.

Admin accounts cannot be created through public sign-up; this script is how
the first one is made.

Usage:
    ADMIN_EMAIL=admin@primecare.test ADMIN_PASSWORD=... python seed_demo.py
"""
import os
from datetime import datetime, timezone

from sqlalchemy import select

from src.lib.db import get_db_context
from src.lib.passwords import hash_password
from src.models.provider_profiles import ProviderProfile
from src.models.services import ServiceName
from src.models.users import User, UserRole
from src.services.rating_service import round_rating

DEMO_PROVIDERS = [
    # (email, name, services, rating_total, review_count)
    ("amira.cleaning@primecare.test", "Amira Haddad", [ServiceName.HOME_CLEANING], 46, 10),
    ("leo.fixes@primecare.test", "Leo Park", [ServiceName.HANDYMAN, ServiceName.PLUMBING_REPAIRS], 27, 6),
    ("volt.works@primecare.test", "Volt Works", [ServiceName.ELECTRICAL_WORK], 0, 0),
    ("green.yard@primecare.test", "Green Yard Co.", [ServiceName.OUTDOOR_CARE], 14, 3),
    ("care.circle@primecare.test", "Care Circle", [ServiceName.CAREGIVING, ServiceName.HOME_CLEANING], 39, 8),
]


def _get_or_create_user(db, email: str, name: str, role: UserRole, password: str) -> User:
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        print(f"   = {email} already exists")
        return user
    user = User(
        email=email,
        name=name,
        role=role,
        password_hash=hash_password(password),
        email_verified=True,
    )
    db.add(user)
    db.flush()
    print(f"   + {email} ({role.value})")
    return user


def seed():
    admin_email = os.getenv("ADMIN_EMAIL", "admin@primecare.test").lower()
    admin_password = os.getenv("ADMIN_PASSWORD", "change-me-admin")
    provider_password = os.getenv("DEMO_PROVIDER_PASSWORD", "change-me-provider")

    with get_db_context() as db:
        print("1. Admin account...")
        _get_or_create_user(db, admin_email, "Prime Care Admin", UserRole.ADMIN, admin_password)

        print("2. Demo providers...")
        now = datetime.now(timezone.utc)
        for email, name, services, rating_total, review_count in DEMO_PROVIDERS:
            user = _get_or_create_user(db, email, name, UserRole.PROVIDER, provider_password)
            if db.get(ProviderProfile, user.id):
                continue
            profile = ProviderProfile(
                provider_id=user.id,
                display_name=name,
                bio=f"{name} on Prime Care.",
                accepting_bookings=True,
                is_online=True,
                is_approved=True,
                rating_total=rating_total,
                review_count=review_count,
                rating=round_rating(rating_total, review_count),
                created_at=now,
                updated_at=now,
            )
            profile.set_services(services)
            db.add(profile)

    print("Seed complete!")


if __name__ == "__main__":
    seed()
