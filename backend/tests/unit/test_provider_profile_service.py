"""Tests for provider self-service profile edits."""
import pytest

from conftest import actor_for, make_provider, make_user
from src.models.services import ServiceName
from src.models.users import UserRole
from src.services.errors import (
    BadRequestException,
    InvalidServiceError,
    NotFoundError,
    PermissionDeniedError,
)
from src.services.provider_profile_service import ProviderProfileService


@pytest.fixture
def profiles():
    return ProviderProfileService()


@pytest.mark.integration
def test_get_profile(profiles, provider):
    profile = profiles.get_profile(actor_for(provider))

    assert profile.display_name == "Sparkle Cleaners"
    assert profile.services == [ServiceName.HOME_CLEANING]


@pytest.mark.integration
def test_profile_missing_before_approval(profiles):
    newcomer = make_user(UserRole.PROVIDER, email="new@example.com")

    with pytest.raises(NotFoundError, match="once your application is approved"):
        profiles.get_profile(actor_for(newcomer))
    with pytest.raises(NotFoundError):
        profiles.set_availability(actor_for(newcomer), is_online=True)


@pytest.mark.integration
def test_only_providers(profiles, customer):
    with pytest.raises(PermissionDeniedError):
        profiles.get_profile(actor_for(customer))
    with pytest.raises(PermissionDeniedError):
        profiles.update_profile(actor_for(customer), bio="hi")


@pytest.mark.integration
def test_update_profile(profiles, provider):
    updated = profiles.update_profile(
        actor_for(provider),
        display_name="  Sparkle & Shine ",
        bio="Eco products only.",
        services=["Home Cleaning", "outdoor-care"],
    )

    assert updated.display_name == "Sparkle & Shine"
    assert updated.bio == "Eco products only."
    assert updated.services == [ServiceName.HOME_CLEANING, ServiceName.OUTDOOR_CARE]
    assert profiles.get_profile(actor_for(provider)).services == updated.services


@pytest.mark.integration
def test_partial_update_leaves_other_fields(profiles, provider):
    updated = profiles.update_profile(actor_for(provider), bio="New bio")

    assert updated.display_name == "Sparkle Cleaners"
    assert updated.services == [ServiceName.HOME_CLEANING]


@pytest.mark.integration
@pytest.mark.parametrize(
    "kwargs,error",
    [
        ({"display_name": "   "}, BadRequestException),
        ({"display_name": "x" * 256}, BadRequestException),
        ({"bio": "x" * 2001}, BadRequestException),
        ({"services": []}, BadRequestException),
        ({"services": ["Dog Walking"]}, InvalidServiceError),
    ],
)
def test_update_validation(profiles, provider, kwargs, error):
    with pytest.raises(error):
        profiles.update_profile(actor_for(provider), **kwargs)


@pytest.mark.integration
def test_reputation_untouched_by_edits(profiles):
    rated = make_provider(name="Rated", rating_total=14, review_count=3)

    profiles.update_profile(actor_for(rated), display_name="Rated Again")
    updated = profiles.set_availability(actor_for(rated), is_online=False)

    assert (updated.rating_total, updated.review_count, updated.rating) == (14, 3, 4.67)
    assert updated.is_approved is True


@pytest.mark.integration
def test_set_availability(profiles, provider):
    offline = profiles.set_availability(actor_for(provider), is_online=False)
    assert (offline.is_online, offline.accepting_bookings) == (False, True)

    paused = profiles.set_availability(actor_for(provider), is_online=True, accepting_bookings=False)
    assert (paused.is_online, paused.accepting_bookings) == (True, False)
