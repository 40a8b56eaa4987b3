"""Single-day timeline with greedy placement and priority-based repair.

The scheduler owns one day's items and a cursor. Flexible items are placed
greedily at the earliest feasible time after the cursor; fixed items are
inserted at externally dictated times and rejected on any overlap. The cursor
only ever moves forward.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from tripcore.config import get_settings
from tripcore.models.common import ItemKind, LocalDate, TimeSlot, minutes_between
from tripcore.models.events import SchedulerEventKind
from tripcore.models.itinerary import ItemDetails, ScheduledItem
from tripcore.models.violations import ScheduleConflict, ScheduleValidation
from tripcore.utils.ids import IdSequence
from tripcore.utils.logging import EventRecorder

logger = logging.getLogger(__name__)

# Kinds exempt from the placement buffer and from hour rounding
LOGISTICS_KINDS = frozenset(
    {
        ItemKind.flight,
        ItemKind.ground_transport,
        ItemKind.checkin,
        ItemKind.checkout,
        ItemKind.parking,
    }
)

# Higher survives conflict repair
PRIORITY: dict[ItemKind, int] = {
    ItemKind.flight: 100,
    ItemKind.ground_transport: 90,
    ItemKind.checkin: 80,
    ItemKind.checkout: 80,
    ItemKind.parking: 70,
    ItemKind.hotel: 60,
    ItemKind.restaurant: 20,
    ItemKind.activity: 10,
}

DEFAULT_PROTECTED_KINDS = frozenset(
    {ItemKind.flight, ItemKind.ground_transport, ItemKind.checkin, ItemKind.parking}
)


def item_priority(kind: ItemKind) -> int:
    return PRIORITY.get(kind, 0)


def round_to_hour(start: datetime, not_before: datetime) -> datetime:
    """Round to the nearest full hour, never earlier than not_before.

    Minutes below 30 round down, otherwise up. A rounded value earlier than
    not_before is replaced by the first full hour at or after not_before.
    """
    floor = start.replace(minute=0, second=0, microsecond=0)
    rounded = floor if start.minute < 30 else floor + timedelta(hours=1)
    if rounded < not_before:
        rounded = not_before.replace(minute=0, second=0, microsecond=0)
        if rounded < not_before:
            rounded += timedelta(hours=1)
    return rounded


class DayScheduler:
    """Timeline for one day.

    Args:
        day: Local calendar day being scheduled
        available_from: Earliest instant of the day window (initial cursor)
        available_until: Latest instant any flexible item may end
        ids: Shared id sequence (a private one is created if omitted)
        recorder: Event sink (a private one is created if omitted)
        buffer_min: Gap kept before non-logistics items
    """

    def __init__(
        self,
        day: LocalDate,
        available_from: datetime,
        available_until: datetime,
        *,
        ids: IdSequence | None = None,
        recorder: EventRecorder | None = None,
        buffer_min: int | None = None,
    ) -> None:
        settings = get_settings()
        self.day = day
        self._ids = ids or IdSequence(prefix=settings.id_prefix)
        self._recorder = recorder or EventRecorder()
        self._buffer_min = settings.placement_buffer_min if buffer_min is None else buffer_min
        self._items: list[ScheduledItem] = []
        self._sequence = 0

        if available_until <= available_from:
            corrected = available_from + timedelta(hours=settings.malformed_window_hours)
            self._recorder.emit(
                SchedulerEventKind.window_corrected,
                reason=f"day end {available_until:%H:%M} not after start {available_from:%H:%M}",
                day_start=available_from.isoformat(),
                day_end=corrected.isoformat(),
            )
            available_until = corrected

        self.day_start = available_from
        self.day_end = available_until
        self._cursor = available_from

    @property
    def cursor(self) -> datetime:
        return self._cursor

    @property
    def items(self) -> list[ScheduledItem]:
        """Items ordered by start time, insertion order breaking ties."""
        return sorted(self._items, key=lambda i: (i.start, i.sequence))

    @property
    def recorder(self) -> EventRecorder:
        return self._recorder

    def remaining_minutes(self) -> int:
        return max(0, minutes_between(self._cursor, self.day_end))

    def can_fit(self, duration_min: int, travel_min: int = 0) -> bool:
        """Check whether duration plus travel fits before day end."""
        return self.remaining_minutes() >= duration_min + travel_min

    def buffer_for(self, kind: ItemKind) -> int:
        return 0 if kind in LOGISTICS_KINDS else self._buffer_min

    def propose_slot(
        self,
        kind: ItemKind,
        duration_min: int,
        travel_min: int = 0,
        min_start: datetime | None = None,
    ) -> TimeSlot | None:
        """Compute where add_item would place an item, without placing it.

        Returns:
            The slot, or None if no gap before day end can hold the item
        """
        if duration_min <= 0:
            return None

        buffer = timedelta(minutes=self.buffer_for(kind))
        duration = timedelta(minutes=duration_min)
        travel = timedelta(minutes=max(0, travel_min))

        start = self._cursor + travel + buffer
        if min_start is not None and start < min_start and min_start > self._cursor:
            start = min_start

        if start < self._cursor:
            logger.error(
                "Proposed start before cursor, forcing forward",
                extra={"structured": {"start": start.isoformat(), "cursor": self._cursor.isoformat()}},
            )
            start = self._cursor + travel

        if kind not in LOGISTICS_KINDS:
            floor = self._cursor if min_start is None else max(self._cursor, min_start)
            start = round_to_hour(start, floor)

        conflict = self._first_conflict(start, start + duration)
        if conflict is not None:
            start = conflict.end + timedelta(minutes=self._buffer_min)
            if self._first_conflict(start, start + duration) is not None:
                found = self._find_free_start(start, duration)
                if found is None:
                    return None
                start = found

        end = start + duration
        if end > self.day_end:
            return None
        return TimeSlot(start=start, end=end)

    def add_item(
        self,
        title: str,
        kind: ItemKind,
        duration_min: int,
        travel_min: int = 0,
        min_start: datetime | None = None,
        payload: ItemDetails | None = None,
    ) -> ScheduledItem | None:
        """Place a flexible item at the earliest feasible time after the cursor.

        Args:
            title: Display title
            kind: Item kind
            duration_min: Length of the item in minutes
            travel_min: Travel time from the previous position
            min_start: Earliest allowed start (e.g., opening time)
            payload: Descriptive details

        Returns:
            The placed item, or None when it cannot fit today
        """
        slot = self.propose_slot(kind, duration_min, travel_min, min_start)
        if slot is None:
            self._recorder.emit(
                SchedulerEventKind.no_fit,
                reason=f"{title} ({duration_min} min) does not fit",
                cursor=self._cursor.isoformat(),
            )
            return None

        item = self._append(
            title,
            kind,
            slot,
            fixed=False,
            travel_min=travel_min if travel_min > 0 else None,
            payload=payload,
        )
        self._cursor = max(self._cursor, slot.end)
        self._recorder.emit(SchedulerEventKind.placed, item_id=item.id, reason=title)
        return item

    def insert_fixed_item(
        self,
        title: str,
        kind: ItemKind,
        start: datetime,
        end: datetime,
        payload: ItemDetails | None = None,
    ) -> ScheduledItem | None:
        """Insert an item at an externally dictated time.

        Returns:
            The item, or None if the window is empty or overlaps an existing item.
            Callers must not retry at another time: an overlap here means two
            upstream times contradict each other.
        """
        if end <= start:
            self._recorder.emit(
                SchedulerEventKind.fixed_rejected,
                reason=f"{title} has an empty window",
                start=start.isoformat(),
                end=end.isoformat(),
            )
            return None

        conflict = self._first_conflict(start, end)
        if conflict is not None:
            self._recorder.emit(
                SchedulerEventKind.fixed_rejected,
                item_id=conflict.id,
                reason=f"{title} overlaps {conflict.title}",
                start=start.isoformat(),
                end=end.isoformat(),
            )
            return None

        item = self._append(title, kind, TimeSlot(start=start, end=end), fixed=True, payload=payload)
        if end > self._cursor:
            self._cursor = end
        self._recorder.emit(SchedulerEventKind.fixed_inserted, item_id=item.id, reason=title)
        return item

    def advance_to(self, moment: datetime) -> None:
        """Move the cursor forward; earlier instants are ignored."""
        if moment > self._cursor:
            self._cursor = moment

    def remove_item(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != item_id]
        return len(self._items) < before

    def remove_conflicts(self) -> int:
        """Remove lower-priority items until no two slots overlap.

        Equal priority removes the later-inserted item.

        Returns:
            Number of removed items
        """
        removed = 0
        while True:
            pair = self._first_overlapping_pair()
            if pair is None:
                return removed
            a, b = pair
            loser = self._loser(a, b)
            winner = b if loser is a else a
            self._items = [i for i in self._items if i.id != loser.id]
            removed += 1
            self._recorder.emit(
                SchedulerEventKind.conflict_removed,
                item_id=loser.id,
                reason=f"{loser.title} overlaps {winner.title}",
                kept=winner.id,
            )

    def remove_items_before(
        self,
        moment: datetime,
        protected_kinds: Iterable[ItemKind] = DEFAULT_PROTECTED_KINDS,
    ) -> int:
        """Strip unprotected items starting before the given instant."""
        protected = frozenset(protected_kinds)
        doomed = [i for i in self._items if i.start < moment and i.kind not in protected]
        for item in doomed:
            self._recorder.emit(
                SchedulerEventKind.purged,
                item_id=item.id,
                reason=f"{item.title} starts before {moment:%H:%M}",
            )
        doomed_ids = {i.id for i in doomed}
        self._items = [i for i in self._items if i.id not in doomed_ids]
        return len(doomed)

    def validate(self) -> ScheduleValidation:
        """Pairwise overlap check across all items."""
        conflicts: list[ScheduleConflict] = []
        ordered = self.items
        for idx, a in enumerate(ordered):
            for b in ordered[idx + 1 :]:
                if a.slot.overlaps(b.slot):
                    conflicts.append(
                        ScheduleConflict(
                            first_id=a.id,
                            second_id=b.id,
                            message=(
                                f"{a.title} ({a.start:%H:%M}-{a.end:%H:%M}) overlaps "
                                f"{b.title} ({b.start:%H:%M}-{b.end:%H:%M})"
                            ),
                        )
                    )
        return ScheduleValidation(valid=not conflicts, conflicts=conflicts)

    def _append(
        self,
        title: str,
        kind: ItemKind,
        slot: TimeSlot,
        *,
        fixed: bool,
        travel_min: int | None = None,
        payload: ItemDetails | None = None,
    ) -> ScheduledItem:
        item = ScheduledItem(
            id=self._ids.next_id(self.day.isoformat()),
            title=title,
            kind=kind,
            slot=slot,
            duration_min=slot.minutes,
            travel_time_from_previous=travel_min,
            fixed=fixed,
            sequence=self._sequence,
            payload=payload or ItemDetails(),
        )
        self._sequence += 1
        self._items.append(item)
        return item

    def _first_conflict(self, start: datetime, end: datetime) -> ScheduledItem | None:
        for item in self.items:
            if start < item.end and item.start < end:
                return item
        return None

    def _find_free_start(self, start: datetime, duration: timedelta) -> datetime | None:
        """Linear sweep for the first gap of the given length at or after start."""
        candidate = start
        for item in self.items:
            if item.end <= candidate:
                continue
            if candidate < item.end and item.start < candidate + duration:
                candidate = item.end + timedelta(minutes=self._buffer_min)
        if candidate + duration > self.day_end:
            return None
        return candidate

    def _first_overlapping_pair(self) -> tuple[ScheduledItem, ScheduledItem] | None:
        ordered = self.items
        for idx, a in enumerate(ordered):
            for b in ordered[idx + 1 :]:
                if b.start >= a.end:
                    break
                if a.slot.overlaps(b.slot):
                    return a, b
        return None

    @staticmethod
    def _loser(a: ScheduledItem, b: ScheduledItem) -> ScheduledItem:
        pa, pb = item_priority(a.kind), item_priority(b.kind)
        if pa != pb:
            return a if pa < pb else b
        return a if a.sequence > b.sequence else b
