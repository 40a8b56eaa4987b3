"""Per-trip spend ledger."""

import logging
from dataclasses import dataclass, field

from tripcore.models.common import BudgetCategory
from tripcore.models.itinerary import BudgetBreakdown, BudgetSummary

logger = logging.getLogger(__name__)

FIXED_CATEGORIES = (BudgetCategory.flights, BudgetCategory.accommodation)


class BudgetError(Exception):
    """Raised on an invalid ledger operation."""

    pass


@dataclass
class BudgetTracker:
    """Spend-only ledger shared by every day of a trip.

    Spending is never rolled back: an amount spent for an item that is later
    removed stays spent. `can_afford` checks the total budget, not a
    per-category allowance.
    """

    total_budget: float
    group_size: int = 1
    duration_days: int = 1
    spent: dict[BudgetCategory, float] = field(
        default_factory=lambda: {category: 0.0 for category in BudgetCategory}
    )
    fixed_costs_set: bool = False

    def __post_init__(self) -> None:
        if self.total_budget < 0:
            raise BudgetError(f"Total budget must be non-negative, got {self.total_budget}")

    def spend(self, category: BudgetCategory, amount: float) -> None:
        """Accumulate spend unconditionally."""
        if amount < 0:
            raise BudgetError(f"Cannot spend a negative amount ({amount}) on {category.value}")
        self.spent[category] += amount
        if self.is_over_budget():
            logger.warning(
                "Trip is over budget",
                extra={
                    "structured": {
                        "category": category.value,
                        "amount": amount,
                        "total_spent": self.total_spent(),
                        "total_budget": self.total_budget,
                    }
                },
            )

    def can_afford(self, category: BudgetCategory, amount: float) -> bool:
        """True iff total spent plus amount stays within the total budget."""
        return self.total_spent() + amount <= self.total_budget

    def set_fixed_costs(self, flights: float, accommodation: float) -> None:
        """Pre-fill flights and accommodation once, before variable spending."""
        if self.fixed_costs_set:
            raise BudgetError("Fixed costs were already set for this trip")
        if flights < 0 or accommodation < 0:
            raise BudgetError("Fixed costs must be non-negative")
        self.spent[BudgetCategory.flights] = flights
        self.spent[BudgetCategory.accommodation] = accommodation
        self.fixed_costs_set = True

    def fixed_total(self) -> float:
        return sum(self.spent[c] for c in FIXED_CATEGORIES)

    def total_spent(self) -> float:
        return sum(self.spent.values())

    def remaining(self) -> float:
        return max(0.0, self.total_budget - self.total_spent())

    def remaining_per_day(self, days_left: int) -> float:
        """Variable budget left per remaining day.

        Fixed costs are taken out of the pool before dividing, so only
        variable spend (food, activities, transport, other) counts against it.
        """
        if days_left <= 0:
            return 0.0
        fixed = self.fixed_total()
        variable_pool = self.total_budget - fixed
        variable_spent = self.total_spent() - fixed
        return max(0.0, (variable_pool - variable_spent) / days_left)

    def daily_budget_for(self, category: BudgetCategory, daily_target: float, days_left: int) -> float:
        """Scale a category's daily target down when the variable pool runs thin."""
        if daily_target <= 0:
            return 0.0
        ratio = min(1.0, self.remaining_per_day(days_left) / (daily_target * 2))
        return float(round(daily_target * ratio))

    def is_over_budget(self) -> bool:
        return self.total_spent() > self.total_budget

    def breakdown(self) -> BudgetBreakdown:
        """Copy of the per-category spend."""
        return BudgetBreakdown(**{category.value: amount for category, amount in self.spent.items()})

    def summary(self) -> BudgetSummary:
        return BudgetSummary(
            total_budget=self.total_budget,
            spent=round(self.total_spent(), 2),
            remaining=round(self.remaining(), 2),
            over_budget=self.is_over_budget(),
            breakdown=self.breakdown(),
        )
