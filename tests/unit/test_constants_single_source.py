"""Test that scheduling constants come from Settings and honor env overrides."""

import pytest

from tripcore.config import Settings, get_settings
from tripcore.models.common import ItemKind, LocalDate, parse_hhmm
from tripcore.scheduling.day_scheduler import DayScheduler


def test_settings_accessible() -> None:
    """Test that Settings can be imported and accessed."""
    settings = get_settings()
    assert settings is not None
    assert get_settings() is settings


def test_scheduler_defaults() -> None:
    settings = get_settings()
    assert settings.placement_buffer_min == 5
    assert settings.malformed_window_hours == 2
    assert parse_hhmm(settings.day_start) < parse_hhmm(settings.day_end)
    assert parse_hhmm(settings.day_end) < parse_hhmm(settings.day_end_nightlife)


def test_airport_constants() -> None:
    """Test that airport timing constants are consistent."""
    settings = get_settings()
    assert settings.airport_buffer_min == 120
    assert settings.security_cutoff_min < settings.airport_buffer_min
    assert settings.return_transfer_lead_min > settings.airport_buffer_min
    assert settings.return_checkout_lead_min > settings.return_transfer_lead_min
    assert settings.arrival_floor_flight_min > settings.arrival_floor_ground_min


def test_meal_and_boundary_constants() -> None:
    settings = get_settings()
    assert settings.lunch_time == settings.morning_cutoff
    assert parse_hhmm(settings.predinner_cutoff) == parse_hhmm(settings.dinner_earliest)
    assert parse_hhmm(settings.afternoon_cutoff) > parse_hhmm(settings.predinner_cutoff)
    assert settings.breakfast_latest_hour == 10


def test_allocation_constants() -> None:
    settings = get_settings()
    assert 0 < settings.allocation_min_per_day <= settings.allocation_max_per_day
    assert settings.gap_fill_max_items == 3
    assert settings.gap_fill_radius_km == 5.0


def test_lookup_timeout_accessible() -> None:
    assert get_settings().lookup_hard_timeout_ms > 0


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that TRIPCORE_-prefixed variables override defaults."""
    monkeypatch.setenv("TRIPCORE_PLACEMENT_BUFFER_MIN", "10")
    monkeypatch.setenv("TRIPCORE_LUNCH_TIME", "13:00")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.placement_buffer_min == 10
    assert settings.lunch_time == "13:00"


def test_scheduler_reads_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRIPCORE_PLACEMENT_BUFFER_MIN", "15")
    get_settings.cache_clear()
    day = LocalDate.parse("2025-06-11")

    scheduler = DayScheduler(day, day.at(9), day.at(22))

    assert scheduler.buffer_for(ItemKind.activity) == 15
    assert scheduler.buffer_for(ItemKind.flight) == 0


def test_unprefixed_variables_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLACEMENT_BUFFER_MIN", "99")
    assert Settings().placement_buffer_min == 5
