"""Per-day orchestration: logistics, meals and attractions on one timeline.

A day is built in a fixed phase order on a single DayScheduler:
carry-over, departure logistics, arrival floor, breakfast, morning, morning
gap fill, last-day checkout, lunch, day-1 check-in after a ground arrival,
afternoon, pre-dinner gap fill, groceries, dinner, return logistics, origin
purge, repair and validation.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from tripcore.adapters.lookups import LookupContext, LookupExecutor, ResolverError
from tripcore.adapters.resolvers import LuggageStorageResolver, RestaurantResolver
from tripcore.config import Settings, get_settings
from tripcore.models.candidates import (
    Accommodation,
    Attraction,
    BudgetStrategy,
    Flight,
    GroundTransport,
    LuggageStorage,
    Parking,
    Restaurant,
    TripPreferences,
)
from tripcore.models.common import BudgetCategory, Geo, ItemKind, LocalDate, MealType, minutes_between
from tripcore.models.events import SchedulerEventKind
from tripcore.models.itinerary import ItemDetails, LateFlightCarryOver, ScheduledItem
from tripcore.models.violations import RejectReason
from tripcore.orchestration.state import TripContext
from tripcore.planning.meals import estimate_meal_price, self_catered_cost, should_self_cater
from tripcore.planning.normalize import is_religious_site
from tripcore.scheduling.day_scheduler import DayScheduler
from tripcore.utils.geo import (
    centroid,
    estimate_airport_transfer,
    estimate_travel_time,
    haversine_km,
    parking_walk_time,
)
from tripcore.verification.feasibility import check_attraction

logger = logging.getLogger(__name__)

# Items that survive the day-1 origin purge
PURGE_PROTECTED_KINDS = frozenset(
    {
        ItemKind.flight,
        ItemKind.ground_transport,
        ItemKind.checkin,
        ItemKind.parking,
        ItemKind.hotel,
        ItemKind.checkout,
    }
)

MEAL_TITLES = {
    MealType.breakfast: "Breakfast",
    MealType.lunch: "Lunch",
    MealType.dinner: "Dinner",
}


class ScheduleInvariantError(Exception):
    """Overlapping items survived conflict repair."""

    pass


def _td(minutes: int) -> timedelta:
    return timedelta(minutes=minutes)


def per_vehicle(group_size: int) -> int:
    """Taxis needed for a group (four seats each)."""
    return math.ceil(group_size / 4)


@dataclass
class DayRequest:
    """Everything one day needs besides the shared trip context."""

    day_number: int
    date: LocalDate
    preferences: TripPreferences
    attractions: list[Attraction] = field(default_factory=list)
    trip_pool: list[Attraction] = field(default_factory=list)
    is_first_day: bool = False
    is_last_day: bool = False
    outbound_flight: Flight | None = None
    return_flight: Flight | None = None
    outbound_transport: GroundTransport | None = None
    return_transport: GroundTransport | None = None
    parking: Parking | None = None
    accommodation: Accommodation | None = None
    strategy: BudgetStrategy | None = None
    carry_over: LateFlightCarryOver | None = None
    is_day_trip: bool = False
    is_grocery_day: bool = False


@dataclass
class DayPlanResult:
    """Items of one finished day plus the hand-off to the next."""

    day_number: int
    date: LocalDate
    items: list[ScheduledItem]
    carry_over: LateFlightCarryOver | None = None
    is_travel_day: bool = False
    conflicts_removed: int = 0


class DayOrchestrator:
    """Builds one day at a time; holds no state between days.

    Args:
        restaurant_resolver: Async restaurant lookup (placeholders when absent)
        storage_resolver: Async luggage-storage lookup (storage skipped when absent)
        executor: Runs lookups under a hard timeout
        settings: Engine settings
    """

    def __init__(
        self,
        restaurant_resolver: RestaurantResolver | None = None,
        storage_resolver: LuggageStorageResolver | None = None,
        executor: LookupExecutor | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._restaurants = restaurant_resolver
        self._storages = storage_resolver
        self._executor = executor or LookupExecutor(self._settings.lookup_hard_timeout_ms)

    async def plan_day(self, request: DayRequest, context: TripContext) -> DayPlanResult:
        """Build one day. Never fails on bad luck, only on a broken invariant.

        Raises:
            ScheduleInvariantError: Overlaps remained after conflict repair
        """
        context.recorder.day_number = request.day_number
        build = _DayBuild(request, context, self, self._settings)
        return await build.run()

    async def find_restaurant(
        self, meal: MealType, near: Geo, price_level: int, context: TripContext, day_number: int
    ) -> Restaurant | None:
        """Resolve a restaurant, degrading to None on failure or timeout."""
        resolver = self._restaurants
        if resolver is None:
            return None
        try:
            restaurant = await self._executor.execute(
                LookupContext("restaurant", day_number),
                lambda: resolver.find_restaurant(
                    meal,
                    near,
                    price_level=price_level,
                    exclude_ids=frozenset(context.used_restaurant_ids),
                ),
            )
        except ResolverError as e:
            context.recorder.emit(SchedulerEventKind.lookup_fallback, reason=str(e), meal=meal.value)
            return None
        if restaurant is None:
            context.recorder.emit(SchedulerEventKind.lookup_fallback, reason="no restaurant resolved", meal=meal.value)
        return restaurant

    async def find_storage(
        self, near: Geo, at: datetime, context: TripContext, day_number: int
    ) -> LuggageStorage | None:
        """Resolve a left-luggage point, degrading to None on failure or timeout."""
        resolver = self._storages
        if resolver is None:
            return None
        try:
            return await self._executor.execute(
                LookupContext("luggage_storage", day_number),
                lambda: resolver.find_storage(near, at),
            )
        except ResolverError as e:
            context.recorder.emit(SchedulerEventKind.lookup_fallback, reason=str(e), lookup="luggage_storage")
            return None


class _DayBuild:
    """Mutable state of one day while its phases run."""

    def __init__(
        self, request: DayRequest, context: TripContext, owner: DayOrchestrator, settings: Settings
    ) -> None:
        self.req = request
        self.ctx = context
        self.owner = owner
        self.s = settings
        self.day = request.date
        self.prefs = request.preferences
        self.group = request.preferences.group_size
        self.acc = request.accommodation
        self.hotel_geo = self.acc.geo if self.acc else self.prefs.destination_geo
        self.last_position: Geo | None = self.hotel_geo
        self.placed: list[Attraction] = []
        self.activity_spent = 0.0
        self.carry_over: LateFlightCarryOver | None = None
        self.travel_day = False
        self.arrival_floor: datetime | None = None
        self.purge_before: datetime | None = None
        self.flexible = True
        self.luggage_drop: ScheduledItem | None = None
        self.luggage_pickup: ScheduledItem | None = None
        self.grocery_start: datetime | None = None
        self.had_lunch = False
        self.checked_in = False
        self.pending_checkin: datetime | None = None

        start, end = self._window()
        self.sched = DayScheduler(
            self.day,
            start,
            end,
            ids=context.ids,
            recorder=context.recorder,
            buffer_min=self.s.placement_buffer_min,
        )

    # -- window ---------------------------------------------------------

    def _window(self) -> tuple[datetime, datetime]:
        s, req, day = self.s, self.req, self.day
        start = day.at_time(s.day_start)
        end = day.at_time(s.day_end_nightlife if self.prefs.wants_nightlife else s.day_end)

        if req.is_first_day and req.outbound_flight is not None:
            flight = req.outbound_flight
            if flight.is_overnight or flight.is_late_night:
                start = min(start, flight.departure)
            else:
                start = flight.arrival + _td(s.arrival_floor_flight_min)
        elif req.is_first_day and req.outbound_transport is not None:
            _, arrival = self._outbound_ground_times(req.outbound_transport)
            start = arrival + _td(s.arrival_floor_ground_min)

        if req.is_last_day and req.return_flight is not None:
            transfer_start = req.return_flight.departure - _td(s.return_transfer_lead_min)
            checkout = self._last_day_checkout_start()
            if transfer_start <= start:
                # Too early a flight for anything but the way out
                self.flexible = False
                start = min(start, checkout)
                end = max(transfer_start, start + _td(s.placement_buffer_min))
            else:
                end = min(end, transfer_start)
        elif req.is_last_day and req.return_transport is not None:
            departure, _ = self._return_ground_times(req.return_transport)
            end = min(end, departure - _td(30))
            if end <= start:
                self.flexible = False
                start = min(start, self._last_day_checkout_start())
                end = max(end, start + _td(s.placement_buffer_min))
        return start, end

    def _outbound_ground_times(self, transport: GroundTransport) -> tuple[datetime, datetime]:
        first, last = (transport.segments[0], transport.segments[-1]) if transport.segments else (None, None)
        if first is not None and first.departure is not None:
            departure = self.day.at_time(first.departure)
        else:
            departure = self.day.at_time(self.s.day_start)
        if last is not None and last.arrival is not None and self.day.at_time(last.arrival) > departure:
            arrival = self.day.at_time(last.arrival)
        else:
            arrival = departure + _td(transport.total_duration_min)
        return departure, arrival

    def _return_ground_times(self, transport: GroundTransport) -> tuple[datetime, datetime]:
        first = transport.segments[0] if transport.segments else None
        if first is not None and first.departure is not None:
            departure = self.day.at_time(first.departure)
        else:
            departure = self.day.at(14)
        return departure, departure + _td(transport.total_duration_min)

    def _last_day_checkout_start(self) -> datetime:
        req, s = self.req, self.s
        if req.return_flight is not None:
            return min(req.return_flight.departure - _td(s.return_checkout_lead_min), self.day.at(12))
        if req.return_transport is not None:
            departure, _ = self._return_ground_times(req.return_transport)
            return min(self.day.at(10), departure - _td(60))
        if self.acc is not None:
            return self.day.at_time(self.acc.checkout_time)
        return self.day.at_time(s.default_checkout_time)

    # -- run ------------------------------------------------------------

    async def run(self) -> DayPlanResult:
        req = self.req

        if req.carry_over is not None and not req.is_first_day:
            self._resolve_carry_over(req.carry_over)

        if req.is_first_day:
            if req.outbound_flight is not None:
                await self._departure_by_flight(req.outbound_flight)
            elif req.outbound_transport is not None:
                await self._departure_by_ground(req.outbound_transport)
            else:
                self.ctx.location.arrive_ground_transport(self.prefs.destination, self.sched.day_start)

        self._enforce_arrival_floor()

        if self.flexible and not self.travel_day:
            await self._breakfast()
            self._morning()
            self._morning_gap_fill()
            if req.is_last_day:
                self._last_day_checkout()
            await self._lunch()
            if self.pending_checkin is not None:
                self._check_in(self.pending_checkin, fill=True)
            evening_groceries = req.is_grocery_day and not (req.is_first_day and self.checked_in)
            if evening_groceries:
                self.grocery_start = max(
                    self.day.at_time(self.s.dinner_earliest) - _td(50), self.sched.cursor
                )
            self._afternoon()
            self._predinner_gap_fill()
            if evening_groceries:
                self._groceries()
            await self._dinner()
        elif req.is_last_day:
            self._last_day_checkout()
        if self.pending_checkin is not None:
            self._check_in(self.pending_checkin, fill=False)

        if req.is_last_day:
            self._return_logistics()

        self._purge_origin_items()
        self._drop_short_luggage_storage()
        removed = self._repair_and_validate()

        return DayPlanResult(
            day_number=req.day_number,
            date=self.day,
            items=self.sched.items,
            carry_over=self.carry_over,
            is_travel_day=self.travel_day,
            conflicts_removed=removed,
        )

    # -- phase 1: carry-over --------------------------------------------

    def _resolve_carry_over(self, carry: LateFlightCarryOver) -> None:
        s = self.s
        arrival = carry.flight.arrival
        transfer_start = arrival + _td(s.arrival_transfer_offset_min)
        transfer_end = transfer_start + _td(s.arrival_transfer_duration_min)
        cost = 25.0 * per_vehicle(self.group)
        self._fixed(
            f"Transfer {carry.destination_airport} to accommodation",
            ItemKind.ground_transport,
            transfer_start,
            transfer_end,
            cost=cost,
            category=BudgetCategory.transport,
            geo=self.hotel_geo,
            tag="transfer",
        )
        self.ctx.location.land_flight(self.prefs.destination, arrival)
        self.last_position = self.hotel_geo
        self.sched.advance_to(transfer_end)

        accommodation = carry.accommodation or self.acc
        if accommodation is not None:
            official = self.day.at_time(accommodation.checkin_time)
            if transfer_end < official:
                title, duration = f"Luggage drop at {accommodation.name}", 10
            else:
                title, duration = f"Check-in at {accommodation.name}", 20
            hotel = self._fixed(
                title,
                ItemKind.hotel,
                transfer_end,
                transfer_end + _td(duration),
                geo=accommodation.geo,
                location_name=accommodation.name,
            )
            if hotel is not None:
                self.sched.advance_to(hotel.end)

        self.arrival_floor = arrival + _td(s.arrival_floor_flight_min)
        self.ctx.recorder.emit(
            SchedulerEventKind.carry_over,
            item_id=carry.flight.id,
            reason="deferred arrival logistics resolved",
            arrival=arrival.isoformat(),
        )

    # -- phase 2: departure logistics -------------------------------------

    async def _departure_by_flight(self, flight: Flight) -> None:
        s, prefs = self.s, self.prefs
        airport_arrival = flight.departure - _td(s.airport_buffer_min)
        parking_min = parking_walk_time(self.req.parking.distance_to_terminal_m) if self.req.parking else 0

        home = prefs.home_geo or prefs.origin_geo
        distance = haversine_km(home, flight.origin_geo) if home and flight.origin_geo else 0.0
        transfer_min, transfer_cost = estimate_airport_transfer(distance, self.group)
        transfer_end = airport_arrival - _td(parking_min)
        self._fixed(
            f"Transfer to {flight.origin_airport}",
            ItemKind.ground_transport,
            transfer_end - _td(transfer_min),
            transfer_end,
            cost=transfer_cost,
            category=BudgetCategory.transport,
            geo=flight.origin_geo,
            tag="transfer",
            description=f"{distance:.0f} km to the departure airport",
        )
        self.ctx.location.go_to_airport(flight.origin_airport, transfer_end)

        if self.req.parking is not None:
            parking = self.req.parking
            self._fixed(
                f"Parking {parking.name}",
                ItemKind.parking,
                airport_arrival - _td(parking_min),
                airport_arrival,
                cost=parking.total_price,
                category=BudgetCategory.transport,
                geo=parking.geo,
                location_name=parking.name,
                source_id=parking.id,
            )

        self._fixed(
            f"Check-in and security at {flight.origin_airport}",
            ItemKind.checkin,
            airport_arrival,
            flight.departure - _td(s.security_cutoff_min),
            geo=flight.origin_geo,
            location_name=flight.origin_airport,
        )
        self._fixed(
            f"Flight {flight.label}",
            ItemKind.flight,
            flight.departure,
            flight.arrival,
            cost=flight.price,
            geo=flight.destination_geo,
            location_name=flight.destination_airport,
            source_id=flight.id,
        )
        self.ctx.location.board_flight(prefs.origin, prefs.destination, flight.departure)

        if flight.is_overnight:
            self.travel_day = True
            self.carry_over = LateFlightCarryOver(
                flight=flight,
                destination_airport=flight.destination_airport,
                accommodation=self.acc,
            )
            self.purge_before = datetime.max
            self.ctx.recorder.emit(
                SchedulerEventKind.carry_over,
                item_id=flight.id,
                reason="overnight arrival deferred to next day",
                arrival=flight.arrival.isoformat(),
            )
            return

        transfer_start = flight.arrival + _td(s.arrival_transfer_offset_min)
        transfer_done = transfer_start + _td(s.arrival_transfer_duration_min)
        self.purge_before = flight.arrival + _td(s.arrival_floor_flight_min)

        if flight.is_late_night:
            self.travel_day = True
            self._fixed(
                f"Transfer {flight.destination_airport} to accommodation",
                ItemKind.ground_transport,
                transfer_start,
                transfer_done,
                cost=35.0 * per_vehicle(self.group),
                category=BudgetCategory.transport,
                geo=self.hotel_geo,
                tag="transfer",
            )
            self.ctx.location.land_flight(prefs.destination, flight.arrival)
            if self.acc is not None:
                self._fixed(
                    f"Late check-in at {self.acc.name}",
                    ItemKind.hotel,
                    transfer_done,
                    transfer_done + _td(15),
                    geo=self.acc.geo,
                    location_name=self.acc.name,
                )
            return

        cost = 0.0 if prefs.car_rental else 25.0 * per_vehicle(self.group)
        self._fixed(
            f"Transfer {flight.destination_airport} to city centre",
            ItemKind.ground_transport,
            transfer_start,
            transfer_done,
            cost=cost,
            category=BudgetCategory.transport,
            geo=prefs.destination_geo,
            tag="transfer",
        )
        self.ctx.location.land_flight(prefs.destination, flight.arrival)
        self.sched.advance_to(transfer_done)
        self.last_position = prefs.destination_geo
        self.arrival_floor = self.purge_before

        if self.acc is not None:
            await self._before_hotel_checkin(transfer_done)

    async def _before_hotel_checkin(self, arrived: datetime) -> None:
        """Use the hours between arrival and official check-in, then check in."""
        acc = self.acc
        assert acc is not None
        checkin_at = self.day.at_time(acc.checkin_time)
        free_min = minutes_between(arrived, checkin_at)

        if free_min >= 90:
            if self.prefs.duration_days > 1:
                await self._luggage_drop(arrived)
            if free_min >= 150 and self._lunch_hour(arrived):
                await self._meal(MealType.lunch, duration=self.s.lunch_duration_min, travel_min=15)
        self._check_in(checkin_at, fill=free_min >= 90)

    def _check_in(self, checkin_at: datetime, fill: bool) -> None:
        """Fill the time left before check-in, pick up stored bags, then check in.

        Runs for day-1 arrivals; on grocery days the shopping follows right
        after the check-in.
        """
        acc = self.acc
        assert acc is not None
        self.pending_checkin = None
        if fill:
            cutoff = checkin_at - _td(30)
            for attraction in self._must_see_first(self.req.attractions):
                if self.sched.cursor >= cutoff:
                    break
                self._try_place(attraction, cutoff, end_buffer_min=15)
            if self.luggage_drop is not None:
                pickup_start = checkin_at - _td(30)
                if pickup_start > self.luggage_drop.end:
                    self.luggage_pickup = self._fixed(
                        "Luggage pickup",
                        ItemKind.activity,
                        pickup_start,
                        pickup_start + _td(15),
                        geo=self.luggage_drop.payload.geo,
                        location_name=self.luggage_drop.payload.location_name,
                        tag="luggage_pickup",
                    )

        start = max(self.sched.cursor, checkin_at)
        hotel = self._fixed(
            f"Check-in at {acc.name}",
            ItemKind.hotel,
            start,
            start + _td(20),
            geo=acc.geo,
            location_name=acc.name,
        )
        if hotel is not None:
            self.sched.advance_to(hotel.end)
            self.last_position = acc.geo
            self.checked_in = True
            if self.req.is_grocery_day and not self.travel_day:
                self._groceries()

    async def _luggage_drop(self, arrived: datetime) -> None:
        storage = await self.owner.find_storage(self.hotel_geo, arrived, self.ctx, self.req.day_number)
        if storage is None:
            return
        cost = storage.price_per_bag * self.group
        self.luggage_drop = self.sched.add_item(
            f"Luggage drop at {storage.name}",
            ItemKind.activity,
            15,
            travel_min=10,
            payload=ItemDetails(
                description="Leave bags until check-in",
                location_name=storage.name,
                geo=storage.geo,
                estimated_cost=cost,
                source_id=storage.id,
                tag="luggage_drop",
            ),
        )
        if self.luggage_drop is not None:
            self._spend(BudgetCategory.other, cost)
            self.last_position = storage.geo

    async def _departure_by_ground(self, transport: GroundTransport) -> None:
        prefs = self.prefs
        departure, arrival = self._outbound_ground_times(transport)
        item = self._fixed(
            f"{transport.mode.value.capitalize()} {prefs.origin} to {prefs.destination}",
            ItemKind.ground_transport,
            departure,
            arrival,
            cost=transport.total_price,
            category=BudgetCategory.transport,
            geo=prefs.destination_geo,
            source_id=transport.id,
            description=transport.operator or "",
        )
        self.ctx.location.board_ground_transport(prefs.origin, prefs.destination, departure)
        self.ctx.location.arrive_ground_transport(prefs.destination, arrival)
        self.last_position = prefs.destination_geo
        self.arrival_floor = arrival + _td(self.s.arrival_floor_ground_min)
        self.sched.advance_to(self.arrival_floor)
        if item is None or self.acc is None:
            return
        if self.req.is_last_day:
            await self._before_hotel_checkin(arrival)
            return

        # Inserted after lunch by run()
        checkin_at = self.day.at_time(self.acc.checkin_time)
        if minutes_between(arrival, checkin_at) >= 90 and self.prefs.duration_days > 1:
            await self._luggage_drop(arrival)
        self.pending_checkin = max(arrival + _td(30), checkin_at)

    # -- phase 3: arrival floor -----------------------------------------

    def _enforce_arrival_floor(self) -> None:
        floor = self.arrival_floor
        if floor is None or self.travel_day:
            return
        if self.sched.cursor < floor:
            self.ctx.recorder.emit(
                SchedulerEventKind.cursor_forced,
                reason=f"cursor {self.sched.cursor:%H:%M} before arrival floor {floor:%H:%M}",
            )
            self.sched.advance_to(floor)

    # -- phase 4: breakfast ---------------------------------------------

    async def _breakfast(self) -> None:
        req = self.req
        if req.is_first_day:
            return
        if req.is_last_day and req.return_flight is not None:
            if self._last_day_checkout_start().hour < 8:
                return
        if self.sched.cursor.hour >= self.s.breakfast_latest_hour:
            return

        if self.acc is not None and self.acc.breakfast_included:
            item = self.sched.add_item(
                f"Breakfast at {self.acc.name}",
                ItemKind.hotel,
                30,
                payload=ItemDetails(
                    description="Included with the room",
                    location_name=self.acc.name,
                    geo=self.acc.geo,
                    tag="breakfast",
                ),
            )
            if item is not None:
                self.last_position = self.acc.geo
            return

        await self._meal(MealType.breakfast, duration=45, travel_min=10)

    # -- phases 5-6: morning --------------------------------------------

    def _morning_cutoff(self) -> datetime:
        cutoff = self.day.at_time(self.s.morning_cutoff)
        if self.req.is_last_day:
            cutoff = min(cutoff, self._last_day_checkout_start())
        return min(cutoff, self.sched.day_end)

    def _morning(self) -> None:
        noon = self.day.at(12)
        cutoff = self._morning_cutoff()
        for attraction in self._must_see_first(self.req.attractions):
            if self.sched.cursor >= noon:
                break
            self._try_place(attraction, cutoff)

    def _morning_gap_fill(self) -> None:
        cutoff = self._morning_cutoff()
        if minutes_between(self.sched.cursor, cutoff) <= self.s.gap_fill_min_free_min:
            return
        for attraction in self.req.attractions:
            if self.ctx.is_used(attraction):
                continue
            self._try_place(attraction, cutoff, end_buffer_min=15)

    # -- last-day checkout ----------------------------------------------

    def _last_day_checkout(self) -> None:
        if self.acc is None:
            return
        start = self._last_day_checkout_start()
        item = self._fixed(
            f"Check-out from {self.acc.name}",
            ItemKind.checkout,
            start,
            start + _td(30),
            geo=self.acc.geo,
            location_name=self.acc.name,
        )
        if item is None:
            # Morning ran long: check out as soon as the traveler is free
            start = self.sched.cursor
            self._fixed(
                f"Check-out from {self.acc.name}",
                ItemKind.checkout,
                start,
                start + _td(30),
                geo=self.acc.geo,
                location_name=self.acc.name,
            )
        self.last_position = self.acc.geo

    # -- phase 7: lunch -------------------------------------------------

    async def _lunch(self) -> None:
        req = self.req
        if req.is_first_day and req.outbound_flight is not None:
            return
        if self.had_lunch or self.sched.day_end < self.day.at(14):
            return
        start = max(self.day.at_time(self.s.lunch_time), self.sched.cursor)
        if start > self.day.at(13, 30):
            return
        placed = await self._meal(MealType.lunch, duration=self.s.lunch_duration_min, fixed_start=start)
        if placed is not None:
            self.sched.advance_to(placed.end)

    # -- phases 8-9: afternoon ------------------------------------------

    def _afternoon_cutoff(self) -> datetime:
        if self.sched.day_end.hour >= 20 or self.sched.day_end.date() > self.day.value:
            cutoff = self.day.at_time(self.s.afternoon_cutoff)
        else:
            cutoff = self.sched.day_end
        if self.grocery_start is not None:
            cutoff = min(cutoff, self.grocery_start)
        return min(cutoff, self.sched.day_end)

    def _afternoon(self) -> None:
        cutoff = self._afternoon_cutoff()
        origin = self.last_position
        remaining = [a for a in self.req.attractions if not self.ctx.is_used(a)]
        remaining.sort(key=lambda a: (self._distance(origin, a.geo), a.id))
        for attraction in remaining:
            if self.sched.cursor >= cutoff:
                break
            self._try_place(attraction, cutoff)

    def _predinner_gap_fill(self) -> None:
        s = self.s
        boundary = min(self.sched.day_end, self.day.at_time(s.predinner_cutoff))
        if self.grocery_start is not None:
            boundary = min(boundary, self.grocery_start)
        if minutes_between(self.sched.cursor, boundary) <= s.gap_fill_min_free_min:
            return

        center = centroid([a.geo for a in self.placed]) or self.last_position
        has_religious = any(is_religious_site(a) for a in self.placed)
        candidates: list[tuple[float, Attraction]] = []
        for attraction in self.req.trip_pool:
            if self.ctx.is_used(attraction):
                continue
            distance = self._distance(center, attraction.geo)
            if distance > s.gap_fill_radius_km:
                self._skip(attraction, RejectReason.TOO_FAR, f"{distance:.1f} km from today's area")
                continue
            if has_religious and is_religious_site(attraction):
                self._skip(attraction, RejectReason.DUPLICATE_RELIGIOUS_SITE, "one religious site per day")
                continue
            candidates.append((distance, attraction))
        candidates.sort(key=lambda x: (x[0], x[1].id))

        added = 0
        for _, attraction in candidates:
            if added >= s.gap_fill_max_items:
                break
            if self._try_place(attraction, boundary, end_buffer_min=15):
                added += 1

    # -- groceries ------------------------------------------------------

    def _groceries(self) -> None:
        s = self.s
        cost = s.grocery_cost_per_person * self.group
        payload = ItemDetails(
            description="Supplies for self-catered meals",
            location_name="Supermarket",
            geo=self.hotel_geo,
            estimated_cost=cost,
            tag="groceries",
        )
        item = None
        if self.grocery_start is not None and self.grocery_start >= self.sched.cursor:
            item = self.sched.insert_fixed_item(
                "Groceries",
                ItemKind.activity,
                self.grocery_start,
                self.grocery_start + _td(s.grocery_duration_min),
                payload=payload,
            )
        if item is None:
            item = self.sched.add_item(
                "Groceries", ItemKind.activity, s.grocery_duration_min, travel_min=10, payload=payload
            )
        if item is not None:
            self._spend(BudgetCategory.food, cost)
            self.ctx.groceries_done = True

    # -- phase 10: dinner -----------------------------------------------

    async def _dinner(self) -> None:
        if self.req.is_last_day:
            return
        end = self.sched.day_end
        if end.hour < 20 and end.date() == self.day.value:
            return
        if not self.sched.can_fit(self.s.dinner_duration_min, 15):
            return
        await self._meal(
            MealType.dinner,
            duration=self.s.dinner_duration_min,
            travel_min=15,
            min_start=self.day.at_time(self.s.dinner_earliest),
        )

    # -- phase 11: return logistics -------------------------------------

    def _return_logistics(self) -> None:
        req, s = self.req, self.s
        if req.return_flight is not None:
            flight = req.return_flight
            transfer_start = flight.departure - _td(s.return_transfer_lead_min)
            self._fixed(
                f"Transfer to {flight.origin_airport}",
                ItemKind.ground_transport,
                transfer_start,
                flight.departure - _td(s.airport_buffer_min),
                cost=25.0 * per_vehicle(self.group),
                category=BudgetCategory.transport,
                geo=flight.origin_geo,
                tag="transfer",
            )
            self._fixed(
                f"Flight {flight.label}",
                ItemKind.flight,
                flight.departure,
                flight.arrival,
                cost=flight.price,
                geo=flight.destination_geo,
                location_name=flight.destination_airport,
                source_id=flight.id,
            )
            self.ctx.location.board_flight(self.prefs.destination, self.prefs.origin, flight.departure)
            if req.parking is not None and not flight.is_overnight:
                pickup = flight.arrival + _td(30)
                self._fixed(
                    f"Parking pickup {req.parking.name}",
                    ItemKind.parking,
                    pickup,
                    pickup + _td(30),
                    geo=req.parking.geo,
                    location_name=req.parking.name,
                    source_id=req.parking.id,
                )
        elif req.return_transport is not None:
            transport = req.return_transport
            departure, arrival = self._return_ground_times(transport)
            self._fixed(
                f"{transport.mode.value.capitalize()} {self.prefs.destination} to {self.prefs.origin}",
                ItemKind.ground_transport,
                departure,
                arrival,
                cost=transport.total_price,
                category=BudgetCategory.transport,
                source_id=transport.id,
                description=transport.operator or "",
            )
            self.ctx.location.board_ground_transport(self.prefs.destination, self.prefs.origin, departure)

    # -- phases 12-13: cleanup ------------------------------------------

    def _purge_origin_items(self) -> None:
        if not self.req.is_first_day or self.req.outbound_flight is None or self.purge_before is None:
            return
        self.sched.remove_items_before(self.purge_before, PURGE_PROTECTED_KINDS)

    def _drop_short_luggage_storage(self) -> None:
        drop, pickup = self.luggage_drop, self.luggage_pickup
        if drop is None:
            return
        if pickup is None or minutes_between(drop.end, pickup.start) < self.s.luggage_min_gap_min:
            for item in (drop, pickup):
                if item is not None and self.sched.remove_item(item.id):
                    self.ctx.recorder.emit(
                        SchedulerEventKind.purged,
                        item_id=item.id,
                        reason="luggage storage not worth it for a short gap",
                    )

    def _repair_and_validate(self) -> int:
        removed = self.sched.remove_conflicts()
        validation = self.sched.validate()
        if not validation.valid:
            for conflict in validation.conflicts:
                self.ctx.recorder.emit(
                    SchedulerEventKind.invariant_violation,
                    item_id=conflict.first_id,
                    reason=conflict.message,
                    other=conflict.second_id,
                )
            raise ScheduleInvariantError(
                f"Day {self.req.day_number}: {len(validation.conflicts)} overlaps after repair"
            )
        return removed

    # -- helpers --------------------------------------------------------

    def _fixed(
        self,
        title: str,
        kind: ItemKind,
        start: datetime,
        end: datetime,
        *,
        cost: float = 0.0,
        category: BudgetCategory | None = None,
        geo: Geo | None = None,
        location_name: str | None = None,
        source_id: str | None = None,
        tag: str | None = None,
        description: str = "",
    ) -> ScheduledItem | None:
        """Insert a fixed item; spend its cost only when it lands."""
        item = self.sched.insert_fixed_item(
            title,
            kind,
            start,
            end,
            payload=ItemDetails(
                description=description,
                location_name=location_name,
                geo=geo,
                estimated_cost=cost,
                source_id=source_id,
                tag=tag,
            ),
        )
        if item is None:
            logger.warning(
                "Fixed item rejected",
                extra={"structured": {"day": self.req.day_number, "title": title, "kind": kind.value}},
            )
        elif category is not None:
            self._spend(category, cost)
        return item

    def _spend(self, category: BudgetCategory, amount: float) -> None:
        if amount > 0:
            self.ctx.budget.spend(category, amount)

    def _try_place(self, attraction: Attraction, cutoff: datetime, end_buffer_min: int = 0) -> bool:
        verdict = check_attraction(
            attraction,
            scheduler=self.sched,
            budget=self.ctx.budget,
            location=self.ctx.location,
            used_ids=self.ctx.used_attraction_ids,
            last_position=self.last_position,
            cutoff=cutoff,
            group_size=self.group,
            default_city=self.prefs.destination,
            day_trip=self.req.is_day_trip,
            end_buffer_min=end_buffer_min,
            closing_buffer_min=self.s.closing_buffer_min,
            activity_allowance=self._activity_allowance(),
        )
        if not verdict.feasible:
            assert verdict.reason is not None
            self._skip(attraction, verdict.reason, verdict.message)
            return False

        item = self.sched.add_item(
            attraction.name,
            ItemKind.activity,
            attraction.duration_min,
            travel_min=verdict.travel_min,
            min_start=verdict.min_start,
            payload=ItemDetails(
                description=attraction.type,
                location_name=attraction.name,
                geo=attraction.geo,
                estimated_cost=verdict.cost,
                source_id=attraction.id,
                attraction_type=attraction.type,
            ),
        )
        if item is None:
            return False
        self._spend(BudgetCategory.activities, verdict.cost)
        self.activity_spent += verdict.cost
        self.ctx.mark_used(attraction)
        self.placed.append(attraction)
        self.last_position = attraction.geo
        return True

    def _skip(self, attraction: Attraction, reason: RejectReason, message: str) -> None:
        self.ctx.recorder.emit(
            SchedulerEventKind.candidate_skipped,
            item_id=attraction.id,
            reason=reason.value,
            message=message,
        )

    def _activity_allowance(self) -> float | None:
        strategy = self.req.strategy
        if strategy is None or strategy.daily_activity_budget <= 0:
            return None
        daily = self.ctx.budget.daily_budget_for(
            BudgetCategory.activities,
            strategy.daily_activity_budget * self.group,
            self.ctx.days_left(self.req.day_number),
        )
        return max(0.0, daily - self.activity_spent)

    async def _meal(
        self,
        meal: MealType,
        *,
        duration: int,
        travel_min: int | None = None,
        min_start: datetime | None = None,
        fixed_start: datetime | None = None,
    ) -> ScheduledItem | None:
        """Place a meal, cooked at the accommodation or at a resolved restaurant.

        Restaurants that cannot be resolved become a generic placeholder at
        the accommodation.
        """
        req = self.req
        label = MEAL_TITLES[meal]
        self_cater = self.acc is not None and should_self_cater(
            meal,
            req.day_number,
            req.strategy,
            hotel_has_breakfast=self.acc.breakfast_included,
            total_days=self.prefs.duration_days,
            is_day_trip=req.is_day_trip,
            groceries_done=self.ctx.groceries_done,
        )

        restaurant: Restaurant | None = None
        if self_cater:
            assert self.acc is not None
            title = f"{label} at {self.acc.name}"
            cost = self_catered_cost(meal, self.group)
            geo, location_name, source_id, placeholder = self.acc.geo, self.acc.name, None, False
        else:
            level = self.prefs.budget_level.price_level
            near = self.last_position or self.prefs.destination_geo
            restaurant = await self.owner.find_restaurant(meal, near, level, self.ctx, req.day_number)
            cost = estimate_meal_price(level, meal) * self.group
            if restaurant is not None:
                title = f"{label} at {restaurant.name}"
                cost = estimate_meal_price(restaurant.price_level, meal) * self.group
                geo, location_name, source_id, placeholder = restaurant.geo, restaurant.name, restaurant.id, False
            else:
                title = f"{label} - Restaurant"
                geo, location_name, source_id, placeholder = self.hotel_geo, None, None, True

        payload = ItemDetails(
            description="Self-catered" if self_cater else "Restaurant",
            location_name=location_name,
            geo=geo,
            estimated_cost=cost,
            source_id=source_id,
            tag=meal.value,
            placeholder=placeholder,
        )
        if fixed_start is not None:
            item = self.sched.insert_fixed_item(
                title, ItemKind.restaurant, fixed_start, fixed_start + _td(duration), payload=payload
            )
        else:
            travel = estimate_travel_time(self.last_position, geo) if travel_min is None else travel_min
            item = self.sched.add_item(
                title, ItemKind.restaurant, duration, travel_min=travel, min_start=min_start, payload=payload
            )
        if item is None:
            return None

        self._spend(BudgetCategory.food, cost)
        if restaurant is not None:
            self.ctx.used_restaurant_ids.add(restaurant.id)
        if meal == MealType.lunch:
            self.had_lunch = True
        self.last_position = geo
        return item

    @staticmethod
    def _distance(origin: Geo | None, target: Geo) -> float:
        return haversine_km(origin, target) if origin is not None else 0.0

    @staticmethod
    def _must_see_first(attractions: list[Attraction]) -> list[Attraction]:
        return sorted(attractions, key=lambda a: not a.must_see)

    def _lunch_hour(self, moment: datetime) -> bool:
        return (moment.hour == 11 and moment.minute >= 30) or 12 <= moment.hour < 14
