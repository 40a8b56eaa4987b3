"""Verdict models - why a candidate can or cannot be placed."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from tripcore.models.common import TimeSlot


class RejectReason(str, Enum):
    """Categories of placement rejection."""

    ALREADY_USED = "already_used"
    WRONG_LOCATION = "wrong_location"
    PAST_CUTOFF = "past_cutoff"
    CLOSES_TOO_SOON = "closes_too_soon"
    OVER_BUDGET = "over_budget"
    NO_SLOT = "no_slot"
    TOO_FAR = "too_far"
    DUPLICATE_RELIGIOUS_SITE = "duplicate_religious_site"


class FeasibilityVerdict(BaseModel):
    """Outcome of checking one attraction against the current day state.

    A feasible verdict carries the travel time and the earliest start the
    scheduler may use; a rejected one carries the reason and a short message.
    """

    feasible: bool
    reason: RejectReason | None = None
    message: str = ""
    travel_min: int = Field(0, ge=0)
    cost: float = Field(0.0, ge=0, description="Total for the group")
    min_start: datetime | None = None
    slot: TimeSlot | None = None

    @classmethod
    def reject(cls, reason: RejectReason, message: str) -> "FeasibilityVerdict":
        return cls(feasible=False, reason=reason, message=message)


class ActivityCheck(BaseModel):
    """Location validation result."""

    valid: bool
    reason: str = ""


class ScheduleConflict(BaseModel):
    """Two items whose slots overlap."""

    first_id: str
    second_id: str
    message: str


class ScheduleValidation(BaseModel):
    """Result of a pairwise overlap check."""

    valid: bool
    conflicts: list[ScheduleConflict] = Field(default_factory=list)
