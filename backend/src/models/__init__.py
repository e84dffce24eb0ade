"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from src.models.users import User
from src.models.provider_profiles import ProviderProfile, ProviderServiceOffering
from src.models.provider_applications import ProviderApplication
from src.models.bookings import Booking

__all__ = [
    "User",
    "ProviderProfile",
    "ProviderServiceOffering",
    "ProviderApplication",
    "Booking",
]
