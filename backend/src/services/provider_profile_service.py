"""
Provider self-service: profile edits and availability toggles.

Reputation fields (rating, review_count, rating_total) and approval are never
written here.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from src.lib.db import SessionLocal
from src.lib.logging import get_logger
from src.lib.transactions import run_in_transaction
from src.models.provider_profiles import ProviderProfile
from src.services.actor import Actor
from src.services.catalog import parse_service
from src.services.errors import BadRequestException, NotFoundError, PermissionDeniedError

logger = get_logger(__name__)

MAX_DISPLAY_NAME = 255
MAX_BIO = 2000


def _require_provider(actor: Actor) -> None:
    if not actor.is_provider:
        raise PermissionDeniedError("Provider access required.")


def _profile_not_found(provider_id: UUID) -> NotFoundError:
    return NotFoundError(
        "ProviderProfile",
        provider_id,
        message="Your provider profile is created once your application is approved.",
    )


class ProviderProfileService:
    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory

    def get_profile(self, actor: Actor) -> ProviderProfile:
        _require_provider(actor)
        session = (self.session_factory or SessionLocal)()
        try:
            profile = session.get(ProviderProfile, actor.user_id)
        finally:
            session.close()
        if profile is None:
            raise _profile_not_found(actor.user_id)
        return profile

    def _update(self, actor: Actor, operation: str, apply) -> ProviderProfile:
        def _work(session: Session) -> ProviderProfile:
            profile = session.execute(
                select(ProviderProfile)
                .where(ProviderProfile.provider_id == actor.user_id)
                .with_for_update()
            ).scalar_one_or_none()
            if profile is None:
                raise _profile_not_found(actor.user_id)
            apply(profile)
            profile.updated_at = datetime.now(timezone.utc)
            return profile

        profile = run_in_transaction(_work, operation=operation, session_factory=self.session_factory)
        logger.info(
            "Provider profile updated",
            extra={"provider_id": str(actor.user_id), "operation": operation},
        )
        return profile

    def update_profile(
        self,
        actor: Actor,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
        services: Optional[Iterable[str]] = None,
    ) -> ProviderProfile:
        """Edit display name, bio and offered services; None leaves a field unchanged."""
        _require_provider(actor)

        if display_name is not None:
            display_name = display_name.strip()
            if not display_name or len(display_name) > MAX_DISPLAY_NAME:
                raise BadRequestException("Display name must be 1-255 characters.")
        if bio is not None:
            bio = bio.strip()
            if len(bio) > MAX_BIO:
                raise BadRequestException("Bio must be at most 2000 characters.")
        resolved = None
        if services is not None:
            resolved = {parse_service(s) for s in services}
            if not resolved:
                raise BadRequestException("Offer at least one service.")

        def _apply(profile: ProviderProfile) -> None:
            if display_name is not None:
                profile.display_name = display_name
            if bio is not None:
                profile.bio = bio
            if resolved is not None:
                profile.set_services(resolved)

        return self._update(actor, "update_profile", _apply)

    def set_availability(
        self,
        actor: Actor,
        is_online: Optional[bool] = None,
        accepting_bookings: Optional[bool] = None,
    ) -> ProviderProfile:
        _require_provider(actor)

        def _apply(profile: ProviderProfile) -> None:
            if is_online is not None:
                profile.is_online = is_online
            if accepting_bookings is not None:
                profile.accepting_bookings = accepting_bookings

        return self._update(actor, "set_availability", _apply)
