"""Structured logging for scheduling events and external lookups."""

import logging
from dataclasses import dataclass, field
from typing import Any

from tripcore.models.events import WARNING_KINDS, SchedulerEvent, SchedulerEventKind
from tripcore.utils.metrics import scheduler_events_total

logger = logging.getLogger(__name__)


@dataclass
class EventRecorder:
    """Collects scheduler events and mirrors each one to the log."""

    events: list[SchedulerEvent] = field(default_factory=list)
    day_number: int | None = None

    def emit(
        self,
        kind: SchedulerEventKind,
        item_id: str | None = None,
        reason: str = "",
        **detail: Any,
    ) -> SchedulerEvent:
        """Record an event and log it with structured data."""
        event = SchedulerEvent(
            sequence=len(self.events),
            kind=kind,
            item_id=item_id,
            reason=reason,
            day_number=self.day_number,
            detail=detail,
        )
        self.events.append(event)
        scheduler_events_total.labels(kind=kind.value).inc()

        log_data: dict[str, Any] = {
            "event": kind.value,
            "sequence": event.sequence,
            "day": self.day_number,
        }
        if item_id:
            log_data["item_id"] = item_id
        if detail:
            log_data.update(detail)

        log_msg = f"Scheduler: {kind.value}" + (f" - {reason}" if reason else "")
        if kind in WARNING_KINDS:
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.info(log_msg, extra={"structured": log_data})
        return event

    def of_kind(self, kind: SchedulerEventKind) -> list[SchedulerEvent]:
        return [e for e in self.events if e.kind == kind]


class StructuredLookupLogger:
    """Structured logger for external lookups."""

    def log_attempt(
        self,
        resolver: str,
        outcome: str,
        latency_ms: float,
        day_number: int | None = None,
        error_reason: str | None = None,
    ) -> None:
        """Log a lookup attempt with structured data."""
        log_data: dict[str, Any] = {
            "resolver": resolver,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "day": day_number,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Lookup: {resolver} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
