"""Meal policy: self-catering decisions, prices, restaurant ranking and grocery runs."""

import math
from collections.abc import Iterable, Sequence

from tripcore.models.candidates import BudgetStrategy, Restaurant
from tripcore.models.common import Geo, MealMode, MealType
from tripcore.utils.geo import haversine_km

# Per-person price by restaurant price level 1..4
MEAL_PRICES: dict[MealType, tuple[float, float, float, float]] = {
    MealType.breakfast: (8.0, 12.0, 18.0, 30.0),
    MealType.lunch: (12.0, 20.0, 35.0, 60.0),
    MealType.dinner: (18.0, 30.0, 50.0, 100.0),
}

# Per-person cost of a meal cooked at the accommodation
SELF_CATERED_COST: dict[MealType, float] = {
    MealType.breakfast: 7.0,
    MealType.lunch: 8.0,
    MealType.dinner: 10.0,
}


def should_self_cater(
    meal: MealType,
    day_number: int,
    strategy: BudgetStrategy | None,
    *,
    hotel_has_breakfast: bool = False,
    total_days: int | None = None,
    is_day_trip: bool = False,
    groceries_done: bool = True,
) -> bool:
    """Decide whether a meal is cooked at the accommodation.

    Args:
        meal: Meal slot
        day_number: 1-based day of the trip
        strategy: Budget strategy (None means always eat out)
        hotel_has_breakfast: Accommodation includes breakfast
        total_days: Trip length, used to find the last full evening
        is_day_trip: Traveler is away from the accommodation's kitchen
        groceries_done: Groceries have been bought at least once

    Returns:
        True when the meal should be self-catered
    """
    if strategy is None:
        return False
    if meal == MealType.breakfast and hotel_has_breakfast:
        return False
    if is_day_trip:
        return False
    if not groceries_done:
        return False

    mode = strategy.mode_for(meal)
    if mode == MealMode.self_catered:
        return True
    if mode == MealMode.restaurant or mode is None:
        return False

    # Mixed: arrival day and last full evening are restaurant meals
    last_full_day = (total_days or 999) - 1
    if day_number == 1:
        return False
    if day_number == last_full_day and meal == MealType.dinner:
        return False
    return day_number % 2 == 1


def estimate_meal_price(price_level: int, meal: MealType) -> float:
    """Per-person restaurant price for a meal at a price level (clamped to 1..4)."""
    level = min(4, max(1, price_level))
    return MEAL_PRICES[meal][level - 1]


def self_catered_cost(meal: MealType, group_size: int) -> float:
    return SELF_CATERED_COST[meal] * group_size


def restaurant_score(restaurant: Restaurant, near: Geo) -> float:
    """Rating weighted score plus a bonus that fades out at 1 km."""
    distance = haversine_km(near, restaurant.geo)
    return restaurant.rating * 10 + max(0.0, 20 - distance * 20)


def rank_restaurants(
    restaurants: Sequence[Restaurant],
    near: Geo,
    *,
    exclude_ids: Iterable[str] = (),
    price_level: int | None = None,
) -> list[Restaurant]:
    """Order candidate restaurants best first, skipping already used ones.

    Ties are broken by id so the ranking is reproducible.
    """
    excluded = set(exclude_ids)
    pool = [r for r in restaurants if r.id not in excluded]
    if price_level is not None:
        matching = [r for r in pool if abs(r.price_level - price_level) <= 1]
        pool = matching or pool
    scored = [(r, restaurant_score(r, near)) for r in pool]
    scored.sort(key=lambda x: (-x[1], x[0].id))
    return [r for r, _ in scored]


def grocery_days(duration_days: int) -> list[int]:
    """Days (1-based) on which groceries are bought.

    The first run happens on day 2 (day 1 for very short trips); trips longer
    than four days get a second run halfway through.
    """
    first = 2 if duration_days > 2 else 1
    days = [first]
    if duration_days > 4:
        second = math.ceil(duration_days / 2) + 1
        if second != first and second <= duration_days:
            days.append(second)
    return days
