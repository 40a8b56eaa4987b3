"""Cross-day duplicate venue removal."""

from tripcore.models.common import ItemKind
from tripcore.models.events import SchedulerEventKind
from tripcore.models.itinerary import ScheduledItem
from tripcore.utils.geo import haversine_km, names_similar
from tripcore.utils.logging import EventRecorder

SAME_VENUE_KM = 0.3


def same_venue(a: ScheduledItem, b: ScheduledItem) -> bool:
    """Two visits to what is probably one place (similar name or near-identical coordinates)."""
    if a.payload.source_id and a.payload.source_id == b.payload.source_id:
        return True
    if names_similar(a.title, b.title):
        return True
    if a.payload.geo is not None and b.payload.geo is not None:
        return haversine_km(a.payload.geo, b.payload.geo) <= SAME_VENUE_KM
    return False


def remove_cross_day_duplicates(days: list[list[ScheduledItem]], recorder: EventRecorder) -> int:
    """Keep one visit per venue across the whole trip, preferring the longer one.

    Only sightseeing items are compared; tagged activities (luggage, groceries)
    are never treated as venues. Day lists are filtered in place.

    Returns:
        Number of removed items
    """
    kept: list[tuple[int, ScheduledItem]] = []
    doomed: set[str] = set()

    for day_index, items in enumerate(days):
        for item in items:
            if item.kind != ItemKind.activity or item.payload.tag is not None:
                continue
            match = next((entry for entry in kept if same_venue(entry[1], item)), None)
            if match is None:
                kept.append((day_index, item))
                continue

            match_day, match_item = match
            if item.duration_min > match_item.duration_min:
                loser, winner, loser_day = match_item, item, match_day
                kept.remove(match)
                kept.append((day_index, item))
            else:
                loser, winner, loser_day = item, match_item, day_index
            doomed.add(loser.id)
            recorder.day_number = loser_day + 1
            recorder.emit(
                SchedulerEventKind.duplicate_removed,
                item_id=loser.id,
                reason=f"{loser.title} duplicates {winner.title}",
                kept=winner.id,
            )

    for items in days:
        items[:] = [i for i in items if i.id not in doomed]
    return len(doomed)
