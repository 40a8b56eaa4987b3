"""Trip-wide mutable state threaded through the sequential day loop."""

from dataclasses import dataclass, field

from tripcore.models.candidates import Attraction
from tripcore.models.common import LocalDate
from tripcore.tracking.budget import BudgetTracker
from tripcore.tracking.location import LocationTracker
from tripcore.utils.ids import IdSequence
from tripcore.utils.logging import EventRecorder


@dataclass
class TripContext:
    """Shared state owned by the trip assembler and lent to one day at a time.

    Days must run strictly in order: each one reads and mutates the budget,
    the used-attraction set and the traveler location left by the previous.
    """

    start_date: LocalDate
    total_days: int
    budget: BudgetTracker
    location: LocationTracker
    ids: IdSequence = field(default_factory=IdSequence)
    recorder: EventRecorder = field(default_factory=EventRecorder)
    used_attraction_ids: set[str] = field(default_factory=set)
    used_restaurant_ids: set[str] = field(default_factory=set)
    groceries_done: bool = True

    def date_of(self, day_number: int) -> LocalDate:
        """Local date of a 1-based trip day."""
        return self.start_date.plus_days(day_number - 1)

    def is_used(self, attraction: Attraction) -> bool:
        return attraction.id in self.used_attraction_ids

    def mark_used(self, attraction: Attraction) -> None:
        self.used_attraction_ids.add(attraction.id)

    def days_left(self, day_number: int) -> int:
        """Days remaining including the given one."""
        return max(0, self.total_days - day_number + 1)
