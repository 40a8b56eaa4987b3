"""Tests for attraction cost and duration cleanup."""

from datetime import datetime

import pytest

from tripcore.models.candidates import Attraction, Flight
from tripcore.models.common import Geo
from tripcore.planning.normalize import (
    estimate_total_available_time,
    fix_attraction_cost,
    fix_attraction_duration,
    is_religious_site,
    normalize_attractions,
)


def make_attraction(
    name: str,
    cost: float = 0.0,
    duration: int = 60,
    booking_url: str | None = None,
    verified: bool = False,
    kind: str = "culture",
) -> Attraction:
    """Helper to create a test attraction."""
    return Attraction(
        id=name.lower().replace(" ", "-"),
        name=name,
        type=kind,
        geo=Geo(lat=41.38, lng=2.17),
        duration_min=duration,
        estimated_cost=cost,
        booking_url=booking_url,
        verified=verified,
    )


def make_flight(departure: datetime, arrival: datetime) -> Flight:
    return Flight(
        id="f1",
        origin_airport="LYS",
        destination_airport="BCN",
        departure=departure,
        arrival=arrival,
    )


class TestFixCost:
    """Test per-person price corrections."""

    @pytest.mark.parametrize(
        "name",
        ["Parc Guell", "Barcelona Cathedral", "Columbus Monument", "Bunkers viewpoint"],
    )
    def test_free_places_cost_nothing(self, name: str) -> None:
        assert fix_attraction_cost(make_attraction(name, cost=12)).estimated_cost == 0.0

    def test_paid_religious_visit_keeps_price(self) -> None:
        fixed = fix_attraction_cost(make_attraction("Cathedral rooftop tour", cost=12))
        assert fixed.estimated_cost == 12

    def test_market_is_capped(self) -> None:
        fixed = fix_attraction_cost(make_attraction("La Boqueria food market", cost=25))
        assert fixed.estimated_cost == 15.0

    def test_unbookable_expensive_price_is_capped(self) -> None:
        assert fix_attraction_cost(make_attraction("Picasso Museum", cost=40)).estimated_cost == 15.0

    def test_bookable_price_is_kept(self) -> None:
        museum = make_attraction("Picasso Museum", cost=40, booking_url="https://tickets.example/picasso")
        assert fix_attraction_cost(museum).estimated_cost == 40

    def test_grocery_store_is_free(self) -> None:
        assert fix_attraction_cost(make_attraction("Carrefour Express", cost=5)).estimated_cost == 0.0

    def test_verified_data_untouched(self) -> None:
        park = make_attraction("Parc Guell", cost=12, verified=True)
        assert fix_attraction_cost(park) is park


class TestFixDuration:
    """Test visit length clamping."""

    def test_viewpoint_capped(self) -> None:
        assert fix_attraction_duration(make_attraction("Montjuic viewpoint", duration=120)).duration_min == 45

    def test_museum_floor(self) -> None:
        assert fix_attraction_duration(make_attraction("Picasso Museum", duration=30)).duration_min == 60

    def test_generic_bounds(self) -> None:
        assert fix_attraction_duration(make_attraction("Flamenco show", duration=300)).duration_min == 240
        assert fix_attraction_duration(make_attraction("Flamenco show", duration=10)).duration_min == 30

    def test_in_range_returns_same_object(self) -> None:
        show = make_attraction("Flamenco show", duration=90)
        assert fix_attraction_duration(show) is show


def test_normalize_attractions_applies_both() -> None:
    raw = [make_attraction("Montjuic viewpoint", cost=8, duration=120)]

    fixed = normalize_attractions(raw)

    assert fixed[0].duration_min == 45
    assert fixed[0].estimated_cost == 0.0
    assert raw[0].duration_min == 120


def test_is_religious_site() -> None:
    assert is_religious_site(make_attraction("Santa Maria del Mar church"))
    assert is_religious_site(make_attraction("Montserrat", kind="religious"))
    assert not is_religious_site(make_attraction("Picasso Museum"))


class TestAvailableTime:
    """Test the sightseeing time estimate."""

    def test_full_days_without_flights(self) -> None:
        assert estimate_total_available_time(3) == 1800

    def test_late_arrival_and_early_return(self) -> None:
        outbound = make_flight(datetime(2025, 6, 10, 12, 0), datetime(2025, 6, 10, 15, 0))
        back = make_flight(datetime(2025, 6, 12, 11, 0), datetime(2025, 6, 12, 13, 0))

        assert estimate_total_available_time(3, outbound, back) == 1200

    def test_never_below_two_hours(self) -> None:
        outbound = make_flight(datetime(2025, 6, 10, 12, 0), datetime(2025, 6, 10, 15, 0))
        back = make_flight(datetime(2025, 6, 10, 9, 0), datetime(2025, 6, 10, 10, 0))

        assert estimate_total_available_time(1, outbound, back) == 120
