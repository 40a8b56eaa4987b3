"""Candidate models - already-resolved external data shapes consumed by the engine."""

from datetime import datetime, time
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from tripcore.models.common import Geo, LocalDate, MealMode, MealType, TransportMode, parse_hhmm


class OpeningHours(BaseModel):
    """Daily opening hours in local time."""

    open: time
    close: time

    @field_validator("open", "close", mode="before")
    @classmethod
    def parse_clock(cls, value: object) -> object:
        """Accept "HH:MM" strings as well as time objects."""
        if isinstance(value, str):
            return parse_hhmm(value)
        return value


class Attraction(BaseModel):
    """Attraction/venue candidate."""

    id: str
    name: str
    type: str = "culture"
    geo: Geo
    duration_min: int = Field(60, gt=0)
    estimated_cost: float = Field(0.0, ge=0, description="Per person")
    opening_hours: OpeningHours | None = None
    must_see: bool = False
    rating: float = Field(0.0, ge=0, le=5)
    city: str | None = None
    booking_url: str | None = None
    verified: bool = False  # Provider-verified duration and price


class Restaurant(BaseModel):
    """Restaurant candidate."""

    id: str
    name: str
    geo: Geo
    rating: float = Field(0.0, ge=0, le=5)
    price_level: int = Field(2, ge=1, le=4)
    cuisine: str | None = None


class Flight(BaseModel):
    """Resolved flight, times in local wall-clock of each airport."""

    id: str
    flight_number: str | None = None
    origin_airport: str
    destination_airport: str
    origin_city: str | None = None
    destination_city: str | None = None
    departure: datetime
    arrival: datetime
    departure_display: str | None = None
    arrival_display: str | None = None
    price: float = Field(0.0, ge=0, description="Total for the group")
    origin_geo: Geo | None = None
    destination_geo: Geo | None = None

    @property
    def is_overnight(self) -> bool:
        """Arrives on a later calendar day than it departs."""
        return self.arrival.date() > self.departure.date()

    @property
    def is_late_night(self) -> bool:
        """Same-day arrival at or after 22:00 or before 05:00."""
        hour = self.arrival.hour
        return (hour >= 22 or hour < 5) and not self.is_overnight

    @property
    def label(self) -> str:
        return self.flight_number or f"{self.origin_airport}-{self.destination_airport}"


class TransportSegment(BaseModel):
    """One leg of a ground journey."""

    from_city: str
    to_city: str
    departure: time | None = None
    arrival: time | None = None


class GroundTransport(BaseModel):
    """Resolved ground transport option (train, bus or car)."""

    id: str
    mode: TransportMode
    segments: list[TransportSegment] = Field(default_factory=list)
    total_duration_min: int = Field(..., gt=0)
    total_price: float = Field(0.0, ge=0)
    operator: str | None = None


class Parking(BaseModel):
    """Airport parking booked for the trip."""

    id: str
    name: str
    geo: Geo | None = None
    total_price: float = Field(0.0, ge=0)
    distance_to_terminal_m: int = Field(0, ge=0)


class Accommodation(BaseModel):
    """Resolved accommodation."""

    id: str
    name: str
    geo: Geo
    price_per_night: float = Field(0.0, ge=0)
    checkin_time: time = time(15, 0)
    checkout_time: time = time(11, 0)
    breakfast_included: bool = False
    has_kitchen: bool = False

    @field_validator("checkin_time", "checkout_time", mode="before")
    @classmethod
    def parse_clock(cls, value: object) -> object:
        """Accept "HH:MM" strings as well as time objects."""
        if isinstance(value, str):
            return parse_hhmm(value)
        return value


class BudgetStrategy(BaseModel):
    """How the trip spends its variable budget."""

    meal_modes: dict[MealType, MealMode] = Field(default_factory=dict)
    daily_activity_budget: float = Field(0.0, ge=0)
    accommodation_budget_per_night: float = Field(0.0, ge=0)
    grocery_shopping_needed: bool = False

    def mode_for(self, meal: MealType) -> MealMode | None:
        return self.meal_modes.get(meal)


class BudgetLevel(str, Enum):
    """Traveler budget level."""

    economic = "economic"
    moderate = "moderate"
    comfort = "comfort"
    luxury = "luxury"

    @property
    def price_level(self) -> int:
        """Restaurant price tier (1-4) matching this level."""
        return list(BudgetLevel).index(self) + 1


class TripPreferences(BaseModel):
    """Traveler request driving a trip."""

    origin: str
    destination: str
    origin_geo: Geo | None = None
    destination_geo: Geo
    home_geo: Geo | None = None
    start_date: LocalDate
    duration_days: int = Field(..., ge=1)
    transport: TransportMode = TransportMode.flight
    car_rental: bool = False
    group_size: int = Field(1, ge=1)
    budget_level: BudgetLevel = BudgetLevel.moderate
    total_budget: float = Field(..., gt=0)
    per_person_per_day: float = Field(0.0, ge=0)
    activities: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def coerce_start_date(cls, data: object) -> object:
        """Accept an ISO string for start_date."""
        if isinstance(data, dict) and isinstance(data.get("start_date"), str):
            data = {**data, "start_date": LocalDate.parse(data["start_date"])}
        return data

    @property
    def wants_nightlife(self) -> bool:
        return "nightlife" in self.activities


class LuggageStorage(BaseModel):
    """Left-luggage point near the accommodation."""

    id: str
    name: str
    geo: Geo
    price_per_bag: float = Field(0.0, ge=0)
