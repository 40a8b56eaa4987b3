"""Distribute the trip's attraction pool across days."""

import logging
from collections.abc import Iterable, Sequence

from tripcore.config import get_settings
from tripcore.models.candidates import Attraction

logger = logging.getLogger(__name__)

Allocation = list[list[Attraction]]


def preallocate(
    attractions: Sequence[Attraction],
    total_days: int,
    *,
    min_per_day: int | None = None,
    max_per_day: int | None = None,
) -> Allocation:
    """Spread attractions over days so no day starves while another overflows.

    Runs one round-robin pass per level 1..min_per_day: every day reaches
    `level` attractions before any day gets `level + 1`. Leftovers are then
    placed greedily on the emptiest day until every day holds max_per_day.

    Args:
        attractions: Candidate pool in priority order
        total_days: Number of trip days
        min_per_day: Levels covered by the round-robin passes
        max_per_day: Hard cap per day

    Returns:
        One list of attractions per day (index 0 is day 1)
    """
    settings = get_settings()
    min_per_day = settings.allocation_min_per_day if min_per_day is None else min_per_day
    max_per_day = settings.allocation_max_per_day if max_per_day is None else max_per_day
    if total_days <= 0:
        return []

    days: Allocation = [[] for _ in range(total_days)]
    used: set[str] = set()

    for level in range(1, min_per_day + 1):
        current = 0
        for attraction in attractions:
            if attraction.id in used:
                continue
            if len(days[current]) >= level:
                nxt = _next_day_below(days, current, level)
                if nxt is None:
                    break
                current = nxt
            days[current].append(attraction)
            used.add(attraction.id)
            current = (current + 1) % total_days

    for attraction in attractions:
        if attraction.id in used:
            continue
        emptiest = min(range(total_days), key=lambda d: (len(days[d]), d))
        if len(days[emptiest]) >= max_per_day:
            break
        days[emptiest].append(attraction)
        used.add(attraction.id)

    logger.info(
        "Attractions pre-allocated",
        extra={
            "structured": {
                "pool": len(attractions),
                "allocated": len(used),
                "per_day": [len(d) for d in days],
            }
        },
    )
    return days


def _next_day_below(days: Allocation, start: int, level: int) -> int | None:
    """First day (cyclic from start) holding fewer than level attractions."""
    total = len(days)
    for offset in range(total):
        idx = (start + offset) % total
        if len(days[idx]) < level:
            return idx
    return None


def redistribute(allocation: Allocation, day_index: int, used_ids: Iterable[str]) -> int:
    """Move a travel day's unused attractions onto the following days.

    Attractions are dealt round-robin to days day_index+1 .. last, skipping
    ids already scheduled and ids already present on the receiving day.

    Args:
        allocation: Per-day lists, mutated in place
        day_index: Zero-based index of the disrupted day
        used_ids: Ids already scheduled anywhere in the trip

    Returns:
        Number of attractions moved
    """
    remaining_days = len(allocation) - day_index - 1
    if remaining_days <= 0:
        return 0

    used = set(used_ids)
    leftovers = [a for a in allocation[day_index] if a.id not in used]
    moved = 0
    for j, attraction in enumerate(leftovers):
        target = day_index + 1 + (j % remaining_days)
        if any(a.id == attraction.id for a in allocation[target]):
            continue
        allocation[target].append(attraction)
        moved += 1

    allocation[day_index] = [a for a in allocation[day_index] if a.id in used]
    if moved:
        logger.info(
            "Redistributed attractions from travel day",
            extra={"structured": {"day_index": day_index, "moved": moved}},
        )
    return moved
