"""
Service catalog - the fixed set of home services that can be booked.
"""
import enum


class ServiceName(str, enum.Enum):
    """Bookable services. Values are the labels customers see."""
    HOME_CLEANING = "Home Cleaning"
    PLUMBING_REPAIRS = "Plumbing & Repairs"
    ELECTRICAL_WORK = "Electrical Work"
    CAREGIVING = "Caregiving"
    HANDYMAN = "Handyman"
    OUTDOOR_CARE = "Outdoor Care"

    @property
    def slug(self) -> str:
        """URL-friendly form, e.g. 'plumbing-repairs'."""
        return self.name.lower().replace("_", "-")


SERVICE_DESCRIPTIONS = {
    ServiceName.HOME_CLEANING: "Recurring or one-off cleaning for apartments and houses.",
    ServiceName.PLUMBING_REPAIRS: "Leaks, clogs, fixtures, and small plumbing installs.",
    ServiceName.ELECTRICAL_WORK: "Outlets, lighting, and wiring by vetted electricians.",
    ServiceName.CAREGIVING: "Companionship and in-home care for family members.",
    ServiceName.HANDYMAN: "Assembly, mounting, and general repairs around the house.",
    ServiceName.OUTDOOR_CARE: "Lawn, garden, and yard upkeep.",
}
