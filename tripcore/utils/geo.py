"""Distance and travel-time estimates."""

import math
import re

from tripcore.models.common import Geo

EARTH_RADIUS_KM = 6371.0

# Same-venue threshold
DEDUP_WORD_OVERLAP_RATIO = 0.70


def haversine_km(a: Geo, b: Geo) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lam = math.radians(b.lng - a.lng)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def estimate_travel_time(origin: Geo | None, destination: Geo | None) -> int:
    """Estimate door-to-door minutes between two points in a city.

    Walking under 1 km, public transport under 5 km, taxi/metro beyond.
    Unknown coordinates count as a short 15 minute hop.
    """
    if origin is None or destination is None:
        return 15
    distance = haversine_km(origin, destination)
    if distance < 1:
        return math.ceil(distance / 4 * 60)
    if distance < 5:
        return math.ceil(distance / 12 * 60) + 10
    return math.ceil(distance / 20 * 60) + 15


def estimate_airport_transfer(distance_km: float, group_size: int) -> tuple[int, float]:
    """Minutes and cost to reach the departure airport from home.

    Returns:
        (duration_min, cost) for the whole group
    """
    if distance_km > 5:
        speed = 150 if distance_km > 200 else 100
        duration = max(60, round(distance_km / speed * 60) + 30)
        cost = 70.0 if distance_km > 200 else float(round(distance_km * 0.15))
        return duration, cost
    duration = max(20, round(distance_km * 2))
    return duration, 15.0 * math.ceil(group_size / 4)


def parking_walk_time(distance_to_terminal_m: int) -> int:
    """Minutes from the parking lot to the terminal, shuttle included."""
    if distance_to_terminal_m > 500:
        return 15 + math.ceil(distance_to_terminal_m / 500) * 5
    return 15


def centroid(points: list[Geo]) -> Geo | None:
    """Arithmetic mean of the points, or None for an empty list."""
    if not points:
        return None
    return Geo(
        lat=sum(p.lat for p in points) / len(points),
        lng=sum(p.lng for p in points) / len(points),
    )


def normalize_name(name: str) -> str:
    return re.sub(r"[^a-z0-9 ]", " ", name.lower()).strip()


def names_similar(a: str, b: str) -> bool:
    """Loose venue-name match: containment or high word overlap."""
    a_norm, b_norm = normalize_name(a), normalize_name(b)
    if not a_norm or not b_norm:
        return False
    if a_norm in b_norm or b_norm in a_norm:
        return True
    a_words, b_words = set(a_norm.split()), set(b_norm.split())
    overlap = len(a_words & b_words) / min(len(a_words), len(b_words))
    return overlap >= DEDUP_WORD_OVERLAP_RATIO

