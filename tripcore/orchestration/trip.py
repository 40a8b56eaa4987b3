"""Trip assembly: sequential day loop plus whole-trip cleanup."""

import logging
from dataclasses import dataclass, field

from tripcore.config import Settings, get_settings
from tripcore.models.candidates import (
    Accommodation,
    Attraction,
    BudgetStrategy,
    Flight,
    GroundTransport,
    Parking,
    TripPreferences,
)
from tripcore.models.common import ItemKind, TimeSlot
from tripcore.models.events import SchedulerEventKind
from tripcore.models.itinerary import DayItinerary, ItemDetails, ScheduledItem, TripItem, TripItinerary
from tripcore.orchestration.day import DayOrchestrator, DayPlanResult, DayRequest
from tripcore.orchestration.state import TripContext
from tripcore.planning.allocator import Allocation, preallocate, redistribute
from tripcore.planning.dedupe import remove_cross_day_duplicates
from tripcore.planning.meals import grocery_days
from tripcore.planning.normalize import estimate_total_available_time, normalize_attractions
from tripcore.scheduling.day_scheduler import LOGISTICS_KINDS
from tripcore.tracking.budget import BudgetTracker
from tripcore.tracking.location import LocationTracker
from tripcore.utils.ids import IdSequence
from tripcore.utils.logging import EventRecorder

logger = logging.getLogger(__name__)


@dataclass
class TripRequest:
    """Resolved inputs for one trip.

    Attributes:
        preferences: Traveler request
        attractions: Candidate pool, best first
        allocation: Curated per-day grouping; computed from the pool when None
        estimated_fixed_costs: Flights plus accommodation as budgeted upfront
        day_trip_days: Day numbers spent outside the destination city
    """

    preferences: TripPreferences
    attractions: list[Attraction] = field(default_factory=list)
    allocation: Allocation | None = None
    outbound_flight: Flight | None = None
    return_flight: Flight | None = None
    outbound_transport: GroundTransport | None = None
    return_transport: GroundTransport | None = None
    parking: Parking | None = None
    accommodation: Accommodation | None = None
    strategy: BudgetStrategy | None = None
    estimated_fixed_costs: float | None = None
    day_trip_days: frozenset[int] = frozenset()


def rebalance_strategy(
    strategy: BudgetStrategy | None,
    estimated_fixed: float | None,
    actual_fixed: float,
    duration_days: int,
) -> BudgetStrategy | None:
    """Shift part of the fixed-cost savings (or overrun) into daily activities.

    40% of the per-day savings is added to the activity budget; an overrun
    above 50 takes the same share out of it.
    """
    if strategy is None or estimated_fixed is None or duration_days <= 0:
        return strategy
    savings = estimated_fixed - actual_fixed
    if savings <= 0 and savings >= -50:
        return strategy
    shift = round(savings / duration_days * 0.4)
    adjusted = max(0.0, strategy.daily_activity_budget + shift)
    logger.info(
        "Daily activity budget rebalanced",
        extra={
            "structured": {
                "savings": round(savings, 2),
                "before": strategy.daily_activity_budget,
                "after": adjusted,
            }
        },
    )
    return strategy.model_copy(update={"daily_activity_budget": adjusted})


class TripAssembler:
    """Runs the day loop and produces the final itinerary.

    Days are planned strictly in order on one TripContext; a day that ends in
    transit hands its arrival logistics and its unused attractions forward.
    """

    def __init__(self, orchestrator: DayOrchestrator | None = None, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._orchestrator = orchestrator or DayOrchestrator(settings=self._settings)

    async def assemble(self, request: TripRequest) -> TripItinerary:
        """Plan every day of a trip.

        Raises:
            ScheduleInvariantError: A day kept overlapping items after repair
        """
        prefs = request.preferences
        total_days = prefs.duration_days
        pool = normalize_attractions(request.attractions)
        allocation = self._initial_allocation(request, pool)
        logger.info(
            "Planning trip",
            extra={
                "structured": {
                    "days": total_days,
                    "pool": len(pool),
                    "available_min": estimate_total_available_time(
                        total_days, request.outbound_flight, request.return_flight
                    ),
                }
            },
        )

        budget = BudgetTracker(prefs.total_budget, prefs.group_size, total_days)
        flights = sum(f.price for f in (request.outbound_flight, request.return_flight) if f is not None)
        nights = max(0, total_days - 1)
        accommodation = request.accommodation.price_per_night * nights if request.accommodation else 0.0
        budget.set_fixed_costs(flights=flights, accommodation=accommodation)
        strategy = rebalance_strategy(
            request.strategy, request.estimated_fixed_costs, budget.fixed_total(), total_days
        )

        context = TripContext(
            start_date=prefs.start_date,
            total_days=total_days,
            budget=budget,
            location=LocationTracker(prefs.origin),
            ids=IdSequence(prefix=self._settings.id_prefix),
            recorder=EventRecorder(),
            groceries_done=not (strategy is not None and strategy.grocery_shopping_needed),
        )
        shopping = set(grocery_days(total_days)) if not context.groceries_done else set()

        results: list[DayPlanResult] = []
        carry_over = None
        for day_number in range(1, total_days + 1):
            day_request = DayRequest(
                day_number=day_number,
                date=context.date_of(day_number),
                preferences=prefs,
                attractions=list(allocation[day_number - 1]),
                trip_pool=pool,
                is_first_day=day_number == 1,
                is_last_day=day_number == total_days,
                outbound_flight=request.outbound_flight if day_number == 1 else None,
                return_flight=request.return_flight if day_number == total_days else None,
                outbound_transport=request.outbound_transport if day_number == 1 else None,
                return_transport=request.return_transport if day_number == total_days else None,
                parking=request.parking,
                accommodation=request.accommodation,
                strategy=strategy,
                carry_over=carry_over,
                is_day_trip=day_number in request.day_trip_days,
                is_grocery_day=day_number in shopping,
            )
            result = await self._orchestrator.plan_day(day_request, context)
            results.append(result)

            carry_over = result.carry_over
            if result.is_travel_day:
                redistribute(allocation, day_number - 1, context.used_attraction_ids)

        day_items = [list(r.items) for r in results]
        if request.return_flight is not None and day_items:
            self._backfill_return_flight(day_items[-1], request.return_flight, results[-1], context)
        remove_cross_day_duplicates(day_items, context.recorder)

        days = [
            DayItinerary(
                day_number=r.day_number,
                date=r.date,
                items=[
                    TripItem.from_scheduled(item, day_number=r.day_number, order_index=idx)
                    for idx, item in enumerate(sorted(items, key=lambda i: (i.start, i.sequence)))
                ],
                is_travel_day=r.is_travel_day,
            )
            for r, items in zip(results, day_items)
        ]
        placed_cost = accommodation + sum(item.estimated_cost for day in days for item in day.items)

        logger.info(
            "Trip assembled",
            extra={
                "structured": {
                    "days": len(days),
                    "items": sum(len(d.items) for d in days),
                    "spent": round(budget.total_spent(), 2),
                    "placed_cost": round(placed_cost, 2),
                    "events": len(context.recorder.events),
                }
            },
        )
        return TripItinerary(
            days=days,
            budget=budget.summary(),
            placed_cost=round(placed_cost, 2),
            events=list(context.recorder.events),
        )

    def _initial_allocation(self, request: TripRequest, pool: list[Attraction]) -> Allocation:
        total_days = request.preferences.duration_days
        if request.allocation is None:
            return preallocate(pool, total_days)

        # Curated groups refer to raw attractions; swap in the normalized copies
        normalized = {a.id: a for a in pool}
        allocation = [[normalized.get(a.id, a) for a in day] for day in request.allocation[:total_days]]
        allocation.extend([] for _ in range(total_days - len(allocation)))
        return allocation

    @staticmethod
    def _backfill_return_flight(
        items: list[ScheduledItem],
        flight: Flight,
        last_day: DayPlanResult,
        context: TripContext,
    ) -> None:
        """Restore a return flight the last day failed to keep.

        Non-logistics items overlapping the flight are dropped to make room.
        """
        if any(i.kind == ItemKind.flight and i.payload.source_id == flight.id for i in items):
            return

        context.recorder.day_number = last_day.day_number
        slot = TimeSlot(start=flight.departure, end=flight.arrival)
        for item in [i for i in items if i.slot.overlaps(slot) and i.kind not in LOGISTICS_KINDS]:
            items.remove(item)
            context.recorder.emit(
                SchedulerEventKind.conflict_removed,
                item_id=item.id,
                reason=f"{item.title} overlaps the return flight",
            )

        restored = ScheduledItem(
            id=context.ids.next_id(last_day.date.isoformat()),
            title=f"Flight {flight.label}",
            kind=ItemKind.flight,
            slot=slot,
            duration_min=slot.minutes,
            fixed=True,
            sequence=max((i.sequence for i in items), default=-1) + 1,
            payload=ItemDetails(
                location_name=flight.destination_airport,
                geo=flight.destination_geo,
                estimated_cost=flight.price,
                source_id=flight.id,
            ),
        )
        items.append(restored)
        context.recorder.emit(
            SchedulerEventKind.fixed_inserted,
            item_id=restored.id,
            reason="return flight restored on the last day",
        )
