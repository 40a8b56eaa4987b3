"""Scheduler event models - what happened while building a day."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SchedulerEventKind(str, Enum):
    """Kind of scheduler event."""

    placed = "placed"
    fixed_inserted = "fixed_inserted"
    no_fit = "no_fit"
    fixed_rejected = "fixed_rejected"
    candidate_skipped = "candidate_skipped"
    conflict_removed = "conflict_removed"
    purged = "purged"
    window_corrected = "window_corrected"
    cursor_forced = "cursor_forced"
    lookup_fallback = "lookup_fallback"
    carry_over = "carry_over"
    duplicate_removed = "duplicate_removed"
    invariant_violation = "invariant_violation"


# Kinds logged at warning level
WARNING_KINDS = frozenset(
    {
        SchedulerEventKind.fixed_rejected,
        SchedulerEventKind.window_corrected,
        SchedulerEventKind.cursor_forced,
        SchedulerEventKind.lookup_fallback,
        SchedulerEventKind.invariant_violation,
    }
)


class SchedulerEvent(BaseModel):
    """Structured event emitted by the scheduler and orchestrators.

    Tests assert against these instead of parsing log text.
    """

    sequence: int = Field(..., ge=0, description="Monotonic per trip")
    kind: SchedulerEventKind
    item_id: str | None = None
    reason: str = ""
    day_number: int | None = None
    detail: dict[str, Any] = Field(default_factory=dict)
