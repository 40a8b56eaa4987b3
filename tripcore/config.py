"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TRIPCORE_",
        extra="ignore",
    )

    # Scheduler (minutes)
    placement_buffer_min: int = 5
    malformed_window_hours: int = 2

    # Day window defaults (HH:MM local)
    day_start: str = "08:00"
    day_end: str = "23:00"
    day_end_nightlife: str = "23:59"
    default_checkout_time: str = "11:00"

    # Airport and station timing (minutes)
    airport_buffer_min: int = 120
    security_cutoff_min: int = 30
    arrival_floor_flight_min: int = 90
    arrival_floor_ground_min: int = 15
    arrival_transfer_offset_min: int = 30
    arrival_transfer_duration_min: int = 40
    return_checkout_lead_min: int = 210
    return_transfer_lead_min: int = 160

    # Meals (minutes)
    lunch_time: str = "12:30"
    lunch_duration_min: int = 75
    dinner_earliest: str = "19:00"
    dinner_duration_min: int = 90
    breakfast_latest_hour: int = 10

    # Daily boundaries (HH:MM local)
    morning_cutoff: str = "12:30"
    afternoon_cutoff: str = "19:30"
    predinner_cutoff: str = "19:00"

    # Attraction allocation
    allocation_min_per_day: int = 4
    allocation_max_per_day: int = 5
    gap_fill_min_free_min: int = 60
    gap_fill_radius_km: float = 5.0
    gap_fill_max_items: int = 3
    closing_buffer_min: int = 30

    # Groceries
    grocery_duration_min: int = 40
    grocery_cost_per_person: float = 25.0

    # Luggage storage
    luggage_min_gap_min: int = 120

    # External lookups (milliseconds)
    lookup_hard_timeout_ms: int = 4000

    # Deterministic ids
    id_prefix: str = "item"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
