"""Explicit caller identity passed into every guarded operation."""
from dataclasses import dataclass
from uuid import UUID

from src.models.users import User, UserRole


@dataclass(frozen=True)
class Actor:
    """Snapshot of the authenticated identity making a request."""
    user_id: UUID
    role: UserRole
    name: str = ""
    email: str = ""
    email_verified: bool = False

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            user_id=user.id,
            role=user.role,
            name=user.name,
            email=user.email,
            email_verified=user.email_verified,
        )

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_provider(self) -> bool:
        return self.role == UserRole.PROVIDER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
