"""Tests for the traveler location state machine."""

from datetime import datetime

from tripcore.tracking.location import LocationState, LocationTracker, normalize_city


def test_starts_at_origin() -> None:
    tracker = LocationTracker("Lyon")

    assert tracker.state == LocationState.AT_ORIGIN
    assert tracker.current_city() == "lyon"
    assert not tracker.validate_activity("Barcelona", "Sagrada Familia").valid


def test_in_transit_rejects_everything() -> None:
    tracker = LocationTracker("Lyon")
    tracker.go_to_airport("LYS", datetime(2025, 6, 10, 6, 0))
    tracker.board_flight("Lyon", "Barcelona", datetime(2025, 6, 10, 8, 0))

    check = tracker.validate_activity("Barcelona", "Park Guell")

    assert tracker.is_in_transit()
    assert tracker.current_city() is None
    assert not check.valid
    assert "in transit" in check.reason


def test_landing_enables_destination_activities() -> None:
    tracker = LocationTracker("Lyon")
    tracker.board_flight("Lyon", "Barcelona")
    tracker.land_flight("Barcelona", datetime(2025, 6, 10, 10, 0))

    assert tracker.state == LocationState.AT_DESTINATION
    assert tracker.validate_activity("  barcelona ", "Park Guell").valid
    assert not tracker.validate_activity("Girona", "Old town").valid


def test_ground_transport_round_trip() -> None:
    tracker = LocationTracker("Paris")
    tracker.board_ground_transport("Paris", "Lyon")
    assert tracker.is_in_transit()

    tracker.arrive_ground_transport("Lyon")

    assert tracker.current_city() == "lyon"
    assert [state for state, _ in tracker.history] == [
        LocationState.AT_ORIGIN,
        LocationState.IN_TRANSIT,
        LocationState.AT_DESTINATION,
    ]


def test_day_trip_bypasses_location() -> None:
    tracker = LocationTracker("Lyon")
    tracker.board_flight("Lyon", "Barcelona")

    assert tracker.validate_activity("Montserrat", "Monastery", day_trip=True).valid


def test_normalize_city() -> None:
    assert normalize_city("  New   York ") == "new york"
    assert normalize_city(None) == ""
