"""Resolver interfaces for lookups made while orchestrating a day, plus pool-backed versions."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol

from tripcore.models.candidates import LuggageStorage, Restaurant
from tripcore.models.common import Geo, MealType
from tripcore.planning.meals import rank_restaurants
from tripcore.utils.geo import haversine_km


class RestaurantResolver(Protocol):
    """Finds a restaurant for a meal near a position."""

    async def find_restaurant(
        self,
        meal: MealType,
        near: Geo,
        *,
        price_level: int,
        exclude_ids: Iterable[str],
    ) -> Restaurant | None: ...


class LuggageStorageResolver(Protocol):
    """Finds a left-luggage point near a position."""

    async def find_storage(self, near: Geo, at: datetime) -> LuggageStorage | None: ...


class PoolRestaurantResolver:
    """Picks from an already-fetched restaurant pool, best ranked first."""

    def __init__(self, restaurants: Sequence[Restaurant]) -> None:
        self._restaurants = list(restaurants)

    async def find_restaurant(
        self,
        meal: MealType,
        near: Geo,
        *,
        price_level: int,
        exclude_ids: Iterable[str],
    ) -> Restaurant | None:
        ranked = rank_restaurants(
            self._restaurants, near, exclude_ids=exclude_ids, price_level=price_level
        )
        return ranked[0] if ranked else None


class PoolLuggageStorageResolver:
    """Picks the closest storage point from an already-fetched pool."""

    def __init__(self, storages: Sequence[LuggageStorage]) -> None:
        self._storages = list(storages)

    async def find_storage(self, near: Geo, at: datetime) -> LuggageStorage | None:
        if not self._storages:
            return None
        return min(self._storages, key=lambda s: (haversine_km(near, s.geo), s.id))
