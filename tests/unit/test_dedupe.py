"""Tests for cross-day duplicate venue removal."""

from datetime import datetime, timedelta

from tripcore.models.common import Geo, ItemKind, TimeSlot
from tripcore.models.events import SchedulerEventKind
from tripcore.models.itinerary import ItemDetails, ScheduledItem
from tripcore.planning.dedupe import remove_cross_day_duplicates, same_venue
from tripcore.utils.logging import EventRecorder

_counter = 0


def make_item(
    title: str,
    duration: int = 60,
    geo: Geo | None = None,
    source_id: str | None = None,
    kind: ItemKind = ItemKind.activity,
    tag: str | None = None,
) -> ScheduledItem:
    """Helper to create a scheduled item at 10:00."""
    global _counter
    _counter += 1
    start = datetime(2025, 6, 11, 10, 0)
    return ScheduledItem(
        id=f"item-{_counter:04d}",
        title=title,
        kind=kind,
        slot=TimeSlot(start=start, end=start + timedelta(minutes=duration)),
        duration_min=duration,
        sequence=_counter,
        payload=ItemDetails(geo=geo, source_id=source_id, tag=tag),
    )


class TestSameVenue:
    """Test venue identity."""

    def test_same_source_id(self) -> None:
        assert same_venue(make_item("Casa Batllo", source_id="a1"), make_item("Batllo house", source_id="a1"))

    def test_similar_names(self) -> None:
        assert same_venue(make_item("Sagrada Familia"), make_item("Basilica of the Sagrada Familia"))

    def test_near_identical_coordinates(self) -> None:
        a = make_item("Magic Fountain", geo=Geo(lat=41.3712, lng=2.1517))
        b = make_item("Font Magica show", geo=Geo(lat=41.3714, lng=2.1519))
        assert same_venue(a, b)

    def test_distinct_venues(self) -> None:
        a = make_item("Picasso Museum", geo=Geo(lat=41.3852, lng=2.1809))
        b = make_item("Park Guell", geo=Geo(lat=41.4145, lng=2.1527))
        assert not same_venue(a, b)


def test_keeps_longer_visit() -> None:
    short = make_item("Sagrada Familia", duration=60)
    long = make_item("Sagrada Familia", duration=120)
    days = [[short], [long]]
    recorder = EventRecorder()

    removed = remove_cross_day_duplicates(days, recorder)

    assert removed == 1
    assert days == [[], [long]]
    event = recorder.of_kind(SchedulerEventKind.duplicate_removed)[0]
    assert event.item_id == short.id
    assert event.day_number == 1
    assert event.detail["kept"] == long.id


def test_tie_keeps_first_seen() -> None:
    first = make_item("Casa Mila")
    second = make_item("Casa Mila")
    days = [[first], [second]]

    remove_cross_day_duplicates(days, EventRecorder())

    assert days == [[first], []]


def test_tagged_and_non_activity_items_ignored() -> None:
    days = [
        [make_item("Groceries", tag="groceries"), make_item("Lunch - Restaurant", kind=ItemKind.restaurant)],
        [make_item("Groceries", tag="groceries"), make_item("Lunch - Restaurant", kind=ItemKind.restaurant)],
    ]

    assert remove_cross_day_duplicates(days, EventRecorder()) == 0
    assert [len(d) for d in days] == [2, 2]


def test_property_no_duplicates_remain() -> None:
    """Whatever the mix, surviving activities are pairwise distinct venues."""
    names = ["Sagrada Familia", "Casa Batllo", "Picasso Museum", "Park Guell"]
    days = [[make_item(names[(d + i) % 4], duration=30 * (i + 1)) for i in range(3)] for d in range(4)]

    remove_cross_day_duplicates(days, EventRecorder())

    survivors = [item for items in days for item in items]
    assert len(survivors) == 4
    for idx, a in enumerate(survivors):
        for b in survivors[idx + 1 :]:
            assert not same_venue(a, b)
