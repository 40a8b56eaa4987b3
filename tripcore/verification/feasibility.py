"""Feasibility predicate for placing an attraction on the current day."""

from collections.abc import Container
from datetime import datetime, timedelta

from tripcore.models.candidates import Attraction
from tripcore.models.common import BudgetCategory, Geo, ItemKind
from tripcore.models.violations import FeasibilityVerdict, RejectReason
from tripcore.scheduling.day_scheduler import DayScheduler
from tripcore.tracking.budget import BudgetTracker
from tripcore.tracking.location import LocationTracker
from tripcore.utils.geo import estimate_travel_time


def opening_window(attraction: Attraction, scheduler: DayScheduler) -> tuple[datetime | None, datetime | None]:
    """Opening and closing instants on the scheduler's day.

    A closing time at or before the opening time is read as after midnight.
    """
    hours = attraction.opening_hours
    if hours is None:
        return None, None
    opens = scheduler.day.at_time(hours.open)
    closes = scheduler.day.at_time(hours.close)
    if closes <= opens:
        closes += timedelta(days=1)
    return opens, closes


def check_attraction(
    attraction: Attraction,
    *,
    scheduler: DayScheduler,
    budget: BudgetTracker,
    location: LocationTracker,
    used_ids: Container[str],
    last_position: Geo | None,
    cutoff: datetime,
    group_size: int = 1,
    default_city: str | None = None,
    day_trip: bool = False,
    end_buffer_min: int = 0,
    closing_buffer_min: int = 30,
    activity_allowance: float | None = None,
) -> FeasibilityVerdict:
    """Decide whether an attraction can be placed now, without placing it.

    Checks, in order: global dedup, traveler location, a slot ending before
    the cutoff, the safe closing time (close minus the closing buffer) and
    affordability. Nothing is mutated.

    Args:
        attraction: Candidate
        scheduler: Day being built (read only)
        budget: Trip ledger (read only)
        location: Traveler location (read only)
        used_ids: Attraction ids already scheduled in the trip
        last_position: Where the traveler is coming from
        cutoff: Latest allowed end for this phase
        group_size: Travelers paying the entry price
        default_city: City assumed for attractions without one
        day_trip: Skip the location check
        end_buffer_min: Extra minutes required between the end and the cutoff
        closing_buffer_min: Minutes before closing the visit must end by
        activity_allowance: Remaining activity spend allowed today, if capped

    Returns:
        FeasibilityVerdict carrying either the reason for rejection or the
        travel time, cost and slot to use
    """
    if attraction.id in used_ids:
        return FeasibilityVerdict.reject(RejectReason.ALREADY_USED, f"{attraction.name} already scheduled")

    check = location.validate_activity(attraction.city or default_city, attraction.name, day_trip=day_trip)
    if not check.valid:
        return FeasibilityVerdict.reject(RejectReason.WRONG_LOCATION, check.reason)

    buffer = timedelta(minutes=end_buffer_min)
    travel = estimate_travel_time(last_position, attraction.geo)
    opens, closes = opening_window(attraction, scheduler)
    min_start = opens if opens is not None and opens >= scheduler.cursor else None

    slot = scheduler.propose_slot(ItemKind.activity, attraction.duration_min, travel, min_start)
    if slot is None:
        return FeasibilityVerdict.reject(RejectReason.NO_SLOT, f"No free slot for {attraction.name}")
    if slot.end + buffer > cutoff:
        return FeasibilityVerdict.reject(
            RejectReason.PAST_CUTOFF, f"{attraction.name} would end at {slot.end:%H:%M}, after {cutoff:%H:%M}"
        )
    if closes is not None and slot.end > closes - timedelta(minutes=closing_buffer_min):
        return FeasibilityVerdict.reject(
            RejectReason.CLOSES_TOO_SOON, f"{attraction.name} closes at {closes:%H:%M}"
        )
    cost = attraction.estimated_cost * group_size
    if cost > 0 and not budget.can_afford(BudgetCategory.activities, cost):
        return FeasibilityVerdict.reject(
            RejectReason.OVER_BUDGET, f"{attraction.name} costs {cost:.0f}, {budget.remaining():.0f} left"
        )
    if cost > 0 and activity_allowance is not None and cost > activity_allowance:
        return FeasibilityVerdict.reject(
            RejectReason.OVER_BUDGET, f"{attraction.name} exceeds today's activity allowance"
        )

    return FeasibilityVerdict(feasible=True, travel_min=travel, cost=cost, min_start=min_start, slot=slot)
