"""Unit tests for lookup execution and pool-backed resolvers.

Tests cover:
1. Hard timeout
2. Resolver exceptions wrapped as ResolverExecutionError
3. Metrics and fallback counters
4. Pool resolvers (ranking, exclusion, closest storage)
"""

import asyncio
from datetime import datetime

import pytest
from prometheus_client import REGISTRY

from tripcore.adapters.lookups import (
    LookupContext,
    LookupExecutor,
    ResolverError,
    ResolverExecutionError,
    ResolverTimeoutError,
)
from tripcore.adapters.resolvers import PoolLuggageStorageResolver, PoolRestaurantResolver
from tripcore.models.candidates import LuggageStorage, Restaurant
from tripcore.models.common import Geo, MealType

CENTER = Geo(lat=41.3874, lng=2.1686)


class RecordingMetrics:
    """Metrics double capturing every call."""

    def __init__(self) -> None:
        self.latencies: list[tuple[str, str]] = []
        self.fallbacks: list[tuple[str, str]] = []

    def record_latency(self, resolver: str, outcome: str, latency_ms: float) -> None:
        self.latencies.append((resolver, outcome))

    def inc_fallback(self, resolver: str, reason: str) -> None:
        self.fallbacks.append((resolver, reason))


class TestLookupExecutor:
    """Test timeout and error handling."""

    @pytest.mark.asyncio
    async def test_success_returns_result(self) -> None:
        metrics = RecordingMetrics()
        executor = LookupExecutor(hard_timeout_ms=1000, metrics=metrics)

        async def lookup() -> str:
            return "ok"

        assert await executor.execute(LookupContext("restaurant", 2), lookup) == "ok"
        assert metrics.latencies == [("restaurant", "success")]
        assert metrics.fallbacks == []

    @pytest.mark.asyncio
    async def test_none_result_is_not_an_error(self) -> None:
        executor = LookupExecutor(hard_timeout_ms=1000, metrics=RecordingMetrics())

        async def lookup() -> None:
            return None

        assert await executor.execute(LookupContext("restaurant"), lookup) is None

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        metrics = RecordingMetrics()
        executor = LookupExecutor(hard_timeout_ms=20, metrics=metrics)

        async def slow_lookup() -> str:
            await asyncio.sleep(1)
            return "too late"

        with pytest.raises(ResolverTimeoutError, match="timed out after 20 ms"):
            await executor.execute(LookupContext("restaurant", 1), slow_lookup)

        assert metrics.latencies == [("restaurant", "timeout")]
        assert metrics.fallbacks == [("restaurant", "timeout")]

    @pytest.mark.asyncio
    async def test_exception_wrapped(self) -> None:
        metrics = RecordingMetrics()
        executor = LookupExecutor(hard_timeout_ms=1000, metrics=metrics)

        async def broken_lookup() -> str:
            raise ValueError("upstream exploded")

        with pytest.raises(ResolverExecutionError) as exc_info:
            await executor.execute(LookupContext("luggage_storage", 1), broken_lookup)

        assert isinstance(exc_info.value, ResolverError)
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert metrics.fallbacks == [("luggage_storage", "execution_error")]

    @pytest.mark.asyncio
    async def test_prometheus_fallback_counter(self) -> None:
        """Default metrics increment the Prometheus fallback counter."""
        labels = {"resolver": "counter_probe", "reason": "timeout"}
        before = REGISTRY.get_sample_value("tripcore_lookup_fallbacks_total", labels) or 0.0
        executor = LookupExecutor(hard_timeout_ms=10)

        async def slow_lookup() -> None:
            await asyncio.sleep(1)

        with pytest.raises(ResolverTimeoutError):
            await executor.execute(LookupContext("counter_probe"), slow_lookup)

        after = REGISTRY.get_sample_value("tripcore_lookup_fallbacks_total", labels)
        assert after == before + 1


class TestPoolResolvers:
    """Test resolvers backed by pre-fetched pools."""

    @pytest.mark.asyncio
    async def test_restaurant_pool_skips_used(self) -> None:
        restaurants = [
            Restaurant(id="r1", name="Best", geo=CENTER, rating=4.8),
            Restaurant(id="r2", name="Next", geo=CENTER, rating=4.2),
        ]
        resolver = PoolRestaurantResolver(restaurants)

        first = await resolver.find_restaurant(MealType.lunch, CENTER, price_level=2, exclude_ids=[])
        second = await resolver.find_restaurant(MealType.dinner, CENTER, price_level=2, exclude_ids=["r1"])
        none_left = await resolver.find_restaurant(
            MealType.dinner, CENTER, price_level=2, exclude_ids=["r1", "r2"]
        )

        assert first is not None and first.id == "r1"
        assert second is not None and second.id == "r2"
        assert none_left is None

    @pytest.mark.asyncio
    async def test_storage_pool_picks_closest(self) -> None:
        storages = [
            LuggageStorage(id="far", name="Far lockers", geo=Geo(lat=41.42, lng=2.17), price_per_bag=5),
            LuggageStorage(id="near", name="Near lockers", geo=Geo(lat=41.388, lng=2.169), price_per_bag=6),
        ]
        resolver = PoolLuggageStorageResolver(storages)

        found = await resolver.find_storage(CENTER, datetime(2025, 6, 10, 11, 0))

        assert found is not None and found.id == "near"

    @pytest.mark.asyncio
    async def test_empty_storage_pool(self) -> None:
        resolver = PoolLuggageStorageResolver([])
        assert await resolver.find_storage(CENTER, datetime(2025, 6, 10, 11, 0)) is None
