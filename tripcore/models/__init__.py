"""Models package - re-exports for convenience."""

from tripcore.models.candidates import (
    Accommodation,
    Attraction,
    BudgetLevel,
    BudgetStrategy,
    Flight,
    GroundTransport,
    LuggageStorage,
    OpeningHours,
    Parking,
    Restaurant,
    TransportSegment,
    TripPreferences,
)
from tripcore.models.common import (
    BudgetCategory,
    Geo,
    ItemKind,
    LocalDate,
    MealMode,
    MealType,
    TimeSlot,
    TransportMode,
)
from tripcore.models.events import SchedulerEvent, SchedulerEventKind
from tripcore.models.itinerary import (
    BudgetBreakdown,
    BudgetSummary,
    DayItinerary,
    ItemDetails,
    LateFlightCarryOver,
    ScheduledItem,
    TripItem,
    TripItinerary,
)
from tripcore.models.violations import (
    ActivityCheck,
    FeasibilityVerdict,
    RejectReason,
    ScheduleConflict,
    ScheduleValidation,
)

__all__ = [
    # Common
    "Geo",
    "LocalDate",
    "TimeSlot",
    "ItemKind",
    "BudgetCategory",
    "MealType",
    "MealMode",
    "TransportMode",
    # Candidates
    "Attraction",
    "OpeningHours",
    "Restaurant",
    "Flight",
    "GroundTransport",
    "TransportSegment",
    "Parking",
    "Accommodation",
    "LuggageStorage",
    "BudgetStrategy",
    "BudgetLevel",
    "TripPreferences",
    # Itinerary
    "ItemDetails",
    "ScheduledItem",
    "TripItem",
    "LateFlightCarryOver",
    "DayItinerary",
    "BudgetBreakdown",
    "BudgetSummary",
    "TripItinerary",
    # Events
    "SchedulerEvent",
    "SchedulerEventKind",
    # Verdicts
    "RejectReason",
    "FeasibilityVerdict",
    "ActivityCheck",
    "ScheduleConflict",
    "ScheduleValidation",
]
