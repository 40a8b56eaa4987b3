"""Itinerary models - scheduled items and the final output."""

from datetime import datetime

from pydantic import BaseModel, Field

from tripcore.models.candidates import Accommodation, Flight
from tripcore.models.common import Geo, ItemKind, LocalDate, TimeSlot, format_hhmm
from tripcore.models.events import SchedulerEvent


class ItemDetails(BaseModel):
    """Descriptive payload carried by a scheduled item."""

    description: str = ""
    location_name: str | None = None
    geo: Geo | None = None
    estimated_cost: float = 0.0
    source_id: str | None = None  # Attraction/restaurant/flight id
    attraction_type: str | None = None
    tag: str | None = None  # e.g. "lunch", "luggage_drop", "groceries"
    placeholder: bool = False


class ScheduledItem(BaseModel):
    """One item on a day's timeline."""

    id: str
    title: str
    kind: ItemKind
    slot: TimeSlot
    duration_min: int = Field(..., gt=0)
    travel_time_from_previous: int | None = None
    fixed: bool = False
    sequence: int = Field(..., ge=0, description="Insertion order within the day")
    payload: ItemDetails = Field(default_factory=ItemDetails)

    @property
    def start(self) -> datetime:
        return self.slot.start

    @property
    def end(self) -> datetime:
        return self.slot.end


class TripItem(BaseModel):
    """Output record for one item of a trip day."""

    id: str
    day_number: int = Field(..., ge=1)
    start_time: str  # HH:MM local
    end_time: str  # HH:MM local
    kind: ItemKind
    title: str
    description: str = ""
    location_name: str | None = None
    geo: Geo | None = None
    estimated_cost: float = 0.0
    order_index: int = Field(..., ge=0)
    travel_time_from_previous: int | None = None
    duration_min: int
    source_id: str | None = None

    @classmethod
    def from_scheduled(cls, item: ScheduledItem, *, day_number: int, order_index: int) -> "TripItem":
        """Convert a scheduler item to the output shape."""
        return cls(
            id=item.id,
            day_number=day_number,
            start_time=format_hhmm(item.start),
            end_time=format_hhmm(item.end),
            kind=item.kind,
            title=item.title,
            description=item.payload.description,
            location_name=item.payload.location_name,
            geo=item.payload.geo,
            estimated_cost=item.payload.estimated_cost,
            order_index=order_index,
            travel_time_from_previous=item.travel_time_from_previous,
            duration_min=item.duration_min,
            source_id=item.payload.source_id,
        )


class LateFlightCarryOver(BaseModel):
    """Deferred arrival logistics handed from day N to day N+1."""

    flight: Flight
    destination_airport: str
    accommodation: Accommodation | None = None


class DayItinerary(BaseModel):
    """Itinerary for a single day."""

    day_number: int = Field(..., ge=1)
    date: LocalDate
    items: list[TripItem]
    is_travel_day: bool = False


class BudgetBreakdown(BaseModel):
    """Spend per ledger category."""

    flights: float = 0.0
    accommodation: float = 0.0
    food: float = 0.0
    activities: float = 0.0
    transport: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.flights
            + self.accommodation
            + self.food
            + self.activities
            + self.transport
            + self.other
        )


class BudgetSummary(BaseModel):
    """Snapshot of the trip ledger."""

    total_budget: float
    spent: float
    remaining: float
    over_budget: bool
    breakdown: BudgetBreakdown


class TripItinerary(BaseModel):
    """Complete multi-day itinerary."""

    days: list[DayItinerary]
    budget: BudgetSummary
    placed_cost: float = Field(..., description="Sum of costs of items that survived cleanup")
    events: list[SchedulerEvent] = Field(default_factory=list)

    @property
    def unplaced_spend(self) -> float:
        """Ledger spend with no surviving item (spend is never rolled back)."""
        return round(max(0.0, self.budget.breakdown.total - self.placed_cost), 2)
