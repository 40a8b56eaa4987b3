"""Common types and enums shared across all models."""

from datetime import date, datetime, time, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


def parse_hhmm(value: str) -> time:
    """Parse a local "HH:MM" string into a time.

    Raises:
        ValueError: If the string is not a valid 24h clock time
    """
    hours, _, minutes = value.strip().partition(":")
    return time(int(hours), int(minutes or 0))


def format_hhmm(moment: datetime | time) -> str:
    """Format a time or datetime as local "HH:MM"."""
    return f"{moment.hour:02d}:{moment.minute:02d}"


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end (negative if end is earlier)."""
    return int((end - start).total_seconds() // 60)


class Geo(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class LocalDate(BaseModel):
    """A calendar day in the destination's local time.

    Built once at trip start and passed everywhere; all instants of a day are
    derived from it so no code needs its own timezone arithmetic.
    """

    model_config = ConfigDict(frozen=True)

    value: date

    @classmethod
    def parse(cls, iso: str) -> "LocalDate":
        """Build from an ISO "YYYY-MM-DD" string (any time part is dropped)."""
        return cls(value=date.fromisoformat(iso[:10]))

    @classmethod
    def of(cls, moment: datetime) -> "LocalDate":
        """Local day an instant falls on."""
        return cls(value=moment.date())

    def at(self, hour: int, minute: int = 0) -> datetime:
        """Instant on this day at the given wall-clock time."""
        return datetime.combine(self.value, time(hour, minute))

    def at_time(self, clock: time | str) -> datetime:
        """Instant on this day at a time or "HH:MM" string."""
        if isinstance(clock, str):
            clock = parse_hhmm(clock)
        return datetime.combine(self.value, clock)

    def plus_days(self, days: int) -> "LocalDate":
        return LocalDate(value=self.value + timedelta(days=days))

    def isoformat(self) -> str:
        return self.value.isoformat()

    def __lt__(self, other: "LocalDate") -> bool:
        return self.value < other.value

    def __str__(self) -> str:
        return self.value.isoformat()


class TimeSlot(BaseModel):
    """Half-open [start, end) interval occupied by one scheduled item."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def validate_positive_length(self) -> "TimeSlot":
        """Ensure end is strictly after start."""
        if self.end <= self.start:
            raise ValueError(f"Slot end {self.end} must be after start {self.start}")
        return self

    @property
    def minutes(self) -> int:
        return minutes_between(self.start, self.end)

    def overlaps(self, other: "TimeSlot") -> bool:
        """True when the two half-open intervals share any instant."""
        return self.start < other.end and other.start < self.end


class ItemKind(str, Enum):
    """Type of a scheduled item."""

    flight = "flight"
    ground_transport = "ground_transport"
    checkin = "checkin"
    checkout = "checkout"
    parking = "parking"
    hotel = "hotel"
    restaurant = "restaurant"
    activity = "activity"


class BudgetCategory(str, Enum):
    """Spend ledger category."""

    flights = "flights"
    accommodation = "accommodation"
    food = "food"
    activities = "activities"
    transport = "transport"
    other = "other"


class MealType(str, Enum):
    """Meal slot of a day."""

    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"


class MealMode(str, Enum):
    """How a budget strategy sources meals."""

    self_catered = "self_catered"
    restaurant = "restaurant"
    mixed = "mixed"


class TransportMode(str, Enum):
    """How the traveler reaches the destination."""

    flight = "flight"
    train = "train"
    bus = "bus"
    car = "car"
