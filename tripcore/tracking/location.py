"""Traveler location state machine."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from tripcore.models.violations import ActivityCheck

logger = logging.getLogger(__name__)


class LocationState(str, Enum):
    """Where the traveler physically is."""

    AT_ORIGIN = "at_origin"
    AT_AIRPORT = "at_airport"
    IN_TRANSIT = "in_transit"
    AT_DESTINATION = "at_destination"


def normalize_city(city: str | None) -> str:
    return " ".join((city or "").lower().split())


@dataclass
class LocationTracker:
    """Tracks the traveler through origin, transit and destination.

    Destination activities are only legal once the traveler has landed (or
    arrived by ground) in the activity's city.
    """

    origin_city: str
    state: LocationState = LocationState.AT_ORIGIN
    city: str = ""
    description: str = ""
    since: datetime | None = None
    history: list[tuple[LocationState, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.city and self.state != LocationState.IN_TRANSIT:
            self.city = normalize_city(self.origin_city)
        self.history.append((self.state, self.city))

    def go_to_airport(self, airport: str, at: datetime | None = None) -> None:
        self._move(LocationState.AT_AIRPORT, self.city, airport, at)

    def board_flight(self, origin: str, destination: str, at: datetime | None = None) -> None:
        self._move(LocationState.IN_TRANSIT, "", f"Flight {origin} -> {destination}", at)

    def land_flight(self, city: str, at: datetime | None = None) -> None:
        self._move(LocationState.AT_DESTINATION, normalize_city(city), f"Landed in {city}", at)

    def board_ground_transport(self, origin: str, destination: str, at: datetime | None = None) -> None:
        self._move(LocationState.IN_TRANSIT, "", f"Ground transport {origin} -> {destination}", at)

    def arrive_ground_transport(self, city: str, at: datetime | None = None) -> None:
        self._move(LocationState.AT_DESTINATION, normalize_city(city), f"Arrived in {city}", at)

    def is_in_transit(self) -> bool:
        return self.state == LocationState.IN_TRANSIT

    def current_city(self) -> str | None:
        """Normalized city, or None while in transit."""
        if self.is_in_transit() or not self.city:
            return None
        return self.city

    def validate_activity(self, city: str | None, name: str, *, day_trip: bool = False) -> ActivityCheck:
        """Check that an activity can happen where the traveler currently is.

        Day trips bypass the check: the traveler is legitimately elsewhere.
        """
        if day_trip:
            return ActivityCheck(valid=True)
        if self.is_in_transit():
            return ActivityCheck(valid=False, reason=f'Cannot schedule "{name}" while in transit')
        if normalize_city(city) != self.city:
            return ActivityCheck(
                valid=False,
                reason=f'"{name}" is in {city}, but the traveler is in {self.city or "an unknown place"}',
            )
        return ActivityCheck(valid=True)

    def _move(self, state: LocationState, city: str, description: str, at: datetime | None) -> None:
        self.state = state
        self.city = city
        self.description = description
        self.since = at
        self.history.append((state, city))
        logger.info(
            "Traveler location changed",
            extra={"structured": {"state": state.value, "city": city, "at": at.isoformat() if at else None}},
        )
