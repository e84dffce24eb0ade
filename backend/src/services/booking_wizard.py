"""
Booking wizard state.

The booking flow has five steps: Service, Provider, Schedule, Address, Confirm.
A step can be left only when its own fields are filled in; going back is always
allowed. Drafts are immutable, every move returns a new draft.
"""
from datetime import date, time
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.models.services import ServiceName
from src.services.catalog import parse_service
from src.services.errors import IncompleteBookingError

STEP_LABELS = ("Service", "Provider", "Schedule", "Address", "Confirm")
FIRST_STEP = 1
LAST_STEP = len(STEP_LABELS)


class BookingDraft(BaseModel):
    """In-progress booking request."""

    model_config = {"frozen": True}

    step: int = Field(default=FIRST_STEP, ge=FIRST_STEP, le=LAST_STEP)
    service: Optional[ServiceName] = None
    provider_id: Optional[UUID] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[time] = None
    address: str = ""
    notes: str = ""

    @field_validator("service", mode="before")
    @classmethod
    def _resolve_service(cls, value):
        if value is None or value == "":
            return None
        return parse_service(value)

    @field_validator("address", "notes", mode="before")
    @classmethod
    def _strip(cls, value):
        return (value or "").strip()

    @property
    def step_label(self) -> str:
        return STEP_LABELS[self.step - 1]

    def _step_missing(self, step: int) -> Dict[str, str]:
        if step == 1 and self.service is None:
            return {"service": "Choose a service."}
        if step == 2 and self.provider_id is None:
            return {"provider_id": "Choose a provider."}
        if step == 3:
            missing = {}
            if self.scheduled_date is None:
                missing["scheduled_date"] = "Pick a date."
            if self.scheduled_time is None:
                missing["scheduled_time"] = "Pick a time."
            return missing
        if step == 4 and not self.address:
            return {"address": "Enter the service address."}
        return {}

    def can_continue(self) -> bool:
        return not self._step_missing(self.step)

    def next_step(self) -> "BookingDraft":
        if self.step >= LAST_STEP or not self.can_continue():
            return self
        return self.model_copy(update={"step": self.step + 1})

    def previous_step(self) -> "BookingDraft":
        return self.model_copy(update={"step": max(FIRST_STEP, self.step - 1)})

    def select_service(self, service) -> "BookingDraft":
        """Changing the service forgets the chosen provider."""
        resolved = parse_service(service)
        if resolved == self.service:
            return self
        return self.model_copy(update={"service": resolved, "provider_id": None})

    def reconcile_providers(self, candidate_ids: Sequence[UUID]) -> "BookingDraft":
        """Keep the chosen provider if still listed, otherwise pick the top candidate."""
        if self.provider_id in candidate_ids:
            return self
        return self.model_copy(update={"provider_id": candidate_ids[0] if candidate_ids else None})

    def missing_fields(self) -> Dict[str, str]:
        missing: Dict[str, str] = {}
        for step in range(FIRST_STEP, LAST_STEP):
            missing.update(self._step_missing(step))
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def require_complete(self) -> "BookingDraft":
        missing = self.missing_fields()
        if missing:
            raise IncompleteBookingError(missing)
        return self

    def completed_steps(self) -> List[str]:
        return [
            STEP_LABELS[step - 1]
            for step in range(FIRST_STEP, LAST_STEP)
            if not self._step_missing(step)
        ]
