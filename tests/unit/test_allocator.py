"""Tests for attraction pre-allocation and travel-day redistribution."""

import random

from tripcore.models.candidates import Attraction
from tripcore.models.common import Geo
from tripcore.planning.allocator import preallocate, redistribute


def make_attraction(idx: int) -> Attraction:
    """Helper to create a test attraction."""
    return Attraction(id=f"a{idx}", name=f"Attraction {idx}", geo=Geo(lat=41.38, lng=2.17))


def make_pool(n: int) -> list[Attraction]:
    return [make_attraction(i) for i in range(n)]


def test_round_robin_fills_levels_first() -> None:
    """Every day reaches a level before any day gets one more."""
    days = preallocate(make_pool(10), 3, min_per_day=4, max_per_day=5)

    assert [len(d) for d in days] == [4, 3, 3]
    assert [a.id for a in days[0]] == ["a0", "a3", "a6", "a9"]
    assert [a.id for a in days[1]] == ["a1", "a4", "a7"]


def test_leftovers_respect_max_per_day() -> None:
    days = preallocate(make_pool(20), 3, min_per_day=4, max_per_day=5)

    assert [len(d) for d in days] == [5, 5, 5]
    ids = [a.id for d in days for a in d]
    assert len(ids) == len(set(ids))


def test_zero_days_returns_empty() -> None:
    assert preallocate(make_pool(5), 0) == []


def test_defaults_come_from_settings() -> None:
    days = preallocate(make_pool(30), 2)

    assert [len(d) for d in days] == [5, 5]


def test_property_fairness_within_one() -> None:
    """For pools up to days * min_per_day, day sizes differ by at most one."""
    rng = random.Random(42)
    for _ in range(30):
        total_days = rng.randint(1, 7)
        pool = make_pool(rng.randint(0, total_days * 4))

        days = preallocate(pool, total_days, min_per_day=4, max_per_day=5)

        sizes = [len(d) for d in days]
        assert max(sizes) - min(sizes) <= 1, sizes
        assert sum(sizes) == len(pool)


class TestRedistribute:
    """Test moving a travel day's unused attractions forward."""

    def test_unused_attractions_move_round_robin(self) -> None:
        days = preallocate(make_pool(12), 3, min_per_day=4, max_per_day=5)
        day_one = [a.id for a in days[0]]

        moved = redistribute(days, 0, used_ids={day_one[0]})

        assert moved == 3
        assert [a.id for a in days[0]] == [day_one[0]]
        assert [a.id for a in days[1][-2:]] == [day_one[1], day_one[3]]
        assert days[2][-1].id == day_one[2]

    def test_last_day_has_nowhere_to_go(self) -> None:
        days = preallocate(make_pool(6), 2, min_per_day=3, max_per_day=3)

        assert redistribute(days, 1, used_ids=set()) == 0
        assert len(days[1]) == 3

    def test_already_present_ids_are_skipped(self) -> None:
        shared = make_attraction(99)
        days = [[shared, make_attraction(1)], [shared]]

        moved = redistribute(days, 0, used_ids=set())

        assert moved == 1
        assert [a.id for a in days[1]] == ["a99", "a1"]
        assert days[0] == []
