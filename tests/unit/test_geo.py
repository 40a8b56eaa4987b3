"""Tests for distance, travel-time and name-similarity helpers."""

import pytest

from tripcore.models.common import Geo
from tripcore.utils.geo import (
    centroid,
    estimate_airport_transfer,
    estimate_travel_time,
    haversine_km,
    names_similar,
    parking_walk_time,
)

PLACA_CATALUNYA = Geo(lat=41.3870, lng=2.1701)
SAGRADA_FAMILIA = Geo(lat=41.4036, lng=2.1744)


def test_haversine_known_distance() -> None:
    # Barcelona to Madrid, about 505 km
    assert haversine_km(Geo(lat=41.3874, lng=2.1686), Geo(lat=40.4168, lng=-3.7038)) == pytest.approx(
        505, abs=5
    )


def test_haversine_zero() -> None:
    assert haversine_km(PLACA_CATALUNYA, PLACA_CATALUNYA) == 0.0


class TestTravelTime:
    """Test in-city travel estimates."""

    def test_unknown_coordinates(self) -> None:
        assert estimate_travel_time(None, PLACA_CATALUNYA) == 15

    def test_walking_distance(self) -> None:
        nearby = Geo(lat=PLACA_CATALUNYA.lat + 0.005, lng=PLACA_CATALUNYA.lng)
        # ~0.56 km at 4 km/h
        assert estimate_travel_time(PLACA_CATALUNYA, nearby) == 9

    def test_public_transport_distance(self) -> None:
        # ~1.9 km at 12 km/h plus 10 min waiting
        assert estimate_travel_time(PLACA_CATALUNYA, SAGRADA_FAMILIA) == 20

    def test_taxi_distance(self) -> None:
        far = Geo(lat=PLACA_CATALUNYA.lat + 0.09, lng=PLACA_CATALUNYA.lng)
        # ~10 km at 20 km/h plus 15 min
        assert 44 <= estimate_travel_time(PLACA_CATALUNYA, far) <= 47


class TestAirportTransfer:
    """Test the home-to-airport estimate."""

    def test_short_taxi_ride(self) -> None:
        assert estimate_airport_transfer(3, 5) == (20, 30.0)

    def test_regional_drive(self) -> None:
        assert estimate_airport_transfer(60, 2) == (66, 9.0)

    def test_long_drive(self) -> None:
        assert estimate_airport_transfer(300, 2) == (150, 70.0)


def test_parking_walk_time() -> None:
    assert parking_walk_time(200) == 15
    assert parking_walk_time(1200) == 30


def test_centroid() -> None:
    assert centroid([]) is None
    center = centroid([Geo(lat=40, lng=2), Geo(lat=42, lng=4)])
    assert center == Geo(lat=41, lng=3)


class TestNamesSimilar:
    """Test venue-name matching."""

    def test_containment(self) -> None:
        assert names_similar("Sagrada Familia", "Basilica de la Sagrada Familia")

    def test_word_overlap(self) -> None:
        assert names_similar("Park Guell", "Guell Park entrance")

    def test_different_places(self) -> None:
        assert not names_similar("Picasso Museum", "Maritime Museum of Barcelona")

    def test_empty_names(self) -> None:
        assert not names_similar("", "Museum")
