"""Tests for the spend-only trip ledger."""

import pytest

from tripcore.models.common import BudgetCategory
from tripcore.tracking.budget import BudgetError, BudgetTracker


@pytest.fixture
def tracker() -> BudgetTracker:
    """A 1000 budget with 700 already committed to travel."""
    budget = BudgetTracker(total_budget=1000, group_size=2, duration_days=4)
    budget.spend(BudgetCategory.flights, 400)
    budget.spend(BudgetCategory.accommodation, 300)
    return budget


def test_can_afford_checks_total_budget(tracker: BudgetTracker) -> None:
    """700 spent leaves room for 250 but not for 350."""
    assert tracker.can_afford(BudgetCategory.activities, 250) is True
    assert tracker.can_afford(BudgetCategory.activities, 300) is True
    assert tracker.can_afford(BudgetCategory.activities, 350) is False


def test_spend_is_unconditional_and_flags_overrun(tracker: BudgetTracker) -> None:
    tracker.spend(BudgetCategory.food, 500)

    assert tracker.total_spent() == 1200
    assert tracker.is_over_budget() is True
    assert tracker.remaining() == 0.0


def test_negative_spend_rejected(tracker: BudgetTracker) -> None:
    with pytest.raises(BudgetError, match="negative"):
        tracker.spend(BudgetCategory.food, -5)


def test_negative_total_budget_rejected() -> None:
    with pytest.raises(BudgetError):
        BudgetTracker(total_budget=-1)


def test_total_spent_is_monotonic() -> None:
    """Spending never decreases the total, whatever the sequence of amounts."""
    budget = BudgetTracker(total_budget=500)
    previous = 0.0
    for amount in [0, 12.5, 40, 0, 3.25, 100, 7]:
        budget.spend(BudgetCategory.other, amount)
        assert budget.total_spent() >= previous
        previous = budget.total_spent()
    assert previous == pytest.approx(162.75)


class TestFixedCosts:
    """Test the one-time fixed cost pre-fill."""

    def test_set_once(self) -> None:
        budget = BudgetTracker(total_budget=2000)
        budget.set_fixed_costs(flights=600, accommodation=450)

        assert budget.fixed_total() == 1050
        with pytest.raises(BudgetError, match="already set"):
            budget.set_fixed_costs(flights=1, accommodation=1)

    def test_negative_fixed_costs_rejected(self) -> None:
        budget = BudgetTracker(total_budget=2000)
        with pytest.raises(BudgetError):
            budget.set_fixed_costs(flights=-10, accommodation=0)


class TestDailyBudget:
    """Test per-day variable budget helpers."""

    def test_remaining_per_day_excludes_fixed_costs(self) -> None:
        budget = BudgetTracker(total_budget=1000)
        budget.set_fixed_costs(flights=400, accommodation=300)
        budget.spend(BudgetCategory.food, 60)

        # (300 variable pool - 60 variable spent) / 3 days
        assert budget.remaining_per_day(3) == pytest.approx(80.0)

    def test_remaining_per_day_zero_days(self) -> None:
        budget = BudgetTracker(total_budget=1000)
        assert budget.remaining_per_day(0) == 0.0

    def test_daily_budget_scales_down_when_pool_is_thin(self) -> None:
        budget = BudgetTracker(total_budget=1000)
        budget.set_fixed_costs(flights=400, accommodation=300)
        budget.spend(BudgetCategory.food, 60)

        # 80 per day against a 50 target: ratio 80 / 100 = 0.8
        assert budget.daily_budget_for(BudgetCategory.activities, 50, 3) == 40.0

    def test_daily_budget_full_when_pool_is_large(self) -> None:
        budget = BudgetTracker(total_budget=5000)
        assert budget.daily_budget_for(BudgetCategory.activities, 50, 3) == 50.0

    def test_daily_budget_zero_target(self) -> None:
        budget = BudgetTracker(total_budget=5000)
        assert budget.daily_budget_for(BudgetCategory.activities, 0, 3) == 0.0


def test_summary_and_breakdown(tracker: BudgetTracker) -> None:
    tracker.spend(BudgetCategory.activities, 55.5)

    summary = tracker.summary()

    assert summary.total_budget == 1000
    assert summary.spent == pytest.approx(755.5)
    assert summary.remaining == pytest.approx(244.5)
    assert summary.over_budget is False
    assert summary.breakdown.flights == 400
    assert summary.breakdown.total == pytest.approx(755.5)
