"""One-time cleanup of attraction costs and durations before allocation."""

import re

from tripcore.models.candidates import Attraction, Flight

GROCERY_RE = re.compile(
    r"\b(supermarket|supermarch[eé]|supermercato|grocery|[eé]picerie|lidl|aldi|carrefour)\b", re.I
)
FREE_PLACE_RE = re.compile(
    r"\b(jardin|parc|park|garden|place|square|piazza|plaza|esplanade|promenade|quartier|"
    r"neighborhood|district|boulevard|street|beach|plage|playa|spiaggia|gate|porte|porta|"
    r"puerta|stairs|old town|vieille ville|centro storico|altstadt|harbou?r|port|marina|"
    r"waterfront|pier|quai|boardwalk)\b",
    re.I,
)
RELIGIOUS_RE = re.compile(
    r"\b([eé]glise|cath[eé]drale|basilique|church|cathedral|basilica|mosqu[eé]e?|mosque|temple|"
    r"synagogue|chapel|chapelle)\b",
    re.I,
)
PAID_RELIGIOUS_RE = re.compile(r"\b(tour|tower|crypte?|crypt|sainte-chapelle|vatican|sistine)\b", re.I)
MONUMENT_RE = re.compile(
    r"\b(arc de|arco|monument|statue|fontaine|fountain|colonne|column|ob[eé]lisque|obelisk)\b", re.I
)
PAID_MONUMENT_RE = re.compile(r"\b(mus[eé]e|museum|tour|tower|observation|mirador|deck)\b", re.I)
VIEWPOINT_RE = re.compile(
    r"\b(mirador|viewpoint|lookout|panoramic|observation point|belvedere|belv[eé]d[eè]re)\b", re.I
)
PAID_VIEWPOINT_RE = re.compile(r"\b(observatory|deck|tower|tour|ticket)\b", re.I)
MARKET_RE = re.compile(r"\b(street food|food market|march[eé]|mercado|market hall|food hall)\b", re.I)

MARKET_COST_CAP = 15.0
UNBOOKABLE_COST_CAP = 15.0
UNBOOKABLE_COST_THRESHOLD = 30.0

# (pattern, floor, cap) in minutes, first match wins
DURATION_RULES: list[tuple[re.Pattern[str], int, int]] = [
    (re.compile(r"\b(viewpoint|mirador|lookout|belvedere)\b", re.I), 20, 45),
    (re.compile(r"\b(fountain|fontaine|statue|monument|obelisk|gate|porte)\b", re.I), 15, 45),
    (re.compile(r"\b(church|[eé]glise|chapel|chapelle|mosque|synagogue|temple)\b", re.I), 20, 60),
    (re.compile(r"\b(cathedral|cath[eé]drale|basilica|basilique)\b", re.I), 30, 90),
    (re.compile(r"\b(square|place|piazza|plaza|street|boulevard)\b", re.I), 20, 60),
    (re.compile(r"\b(market|march[eé]|mercado|food hall)\b", re.I), 30, 90),
    (re.compile(r"\b(museum|mus[eé]e|gallery|galerie)\b", re.I), 60, 180),
    (re.compile(r"\b(park|parc|garden|jardin)\b", re.I), 30, 120),
    (re.compile(r"\b(zoo|aquarium|theme park|palace|palais|castle|ch[aâ]teau)\b", re.I), 90, 240),
]
MIN_DURATION = 30
MAX_DURATION = 240


def is_religious_site(attraction: Attraction) -> bool:
    return bool(RELIGIOUS_RE.search(attraction.name)) or attraction.type == "religious"


def fix_attraction_cost(attraction: Attraction) -> Attraction:
    """Correct implausible per-person prices; provider-verified data is kept."""
    if attraction.verified:
        return attraction

    name = attraction.name
    cost = attraction.estimated_cost

    if GROCERY_RE.search(name):
        return attraction.model_copy(update={"estimated_cost": 0.0})
    if cost <= 0:
        return attraction
    if FREE_PLACE_RE.search(name):
        return attraction.model_copy(update={"estimated_cost": 0.0})
    if RELIGIOUS_RE.search(name) and not PAID_RELIGIOUS_RE.search(name):
        return attraction.model_copy(update={"estimated_cost": 0.0})
    if MONUMENT_RE.search(name) and not PAID_MONUMENT_RE.search(name):
        return attraction.model_copy(update={"estimated_cost": 0.0})
    if VIEWPOINT_RE.search(name) and not PAID_VIEWPOINT_RE.search(name):
        return attraction.model_copy(update={"estimated_cost": 0.0})
    if MARKET_RE.search(name) and cost > MARKET_COST_CAP:
        return attraction.model_copy(update={"estimated_cost": MARKET_COST_CAP})
    # Nothing to book means the price is most likely a guess
    if cost >= UNBOOKABLE_COST_THRESHOLD and not attraction.booking_url:
        return attraction.model_copy(update={"estimated_cost": UNBOOKABLE_COST_CAP})
    return attraction


def fix_attraction_duration(attraction: Attraction) -> Attraction:
    """Clamp visit length to a plausible range for the venue type."""
    if attraction.verified:
        return attraction

    floor, cap = MIN_DURATION, MAX_DURATION
    for pattern, rule_floor, rule_cap in DURATION_RULES:
        if pattern.search(attraction.name):
            floor, cap = rule_floor, rule_cap
            break

    fixed = max(floor, min(cap, attraction.duration_min))
    if fixed != attraction.duration_min:
        return attraction.model_copy(update={"duration_min": fixed})
    return attraction


def normalize_attractions(attractions: list[Attraction]) -> list[Attraction]:
    """Apply duration then cost corrections to every attraction."""
    return [fix_attraction_cost(fix_attraction_duration(a)) for a in attractions]


def estimate_total_available_time(
    duration_days: int,
    outbound: Flight | None = None,
    return_flight: Flight | None = None,
) -> int:
    """Rough number of sightseeing minutes in a trip.

    Ten hours per day, minus the part of the first day lost to a midday or
    afternoon arrival and the part of the last day lost to an early return.
    """
    total = duration_days * 600
    if outbound is not None:
        hour = outbound.arrival.hour
        if hour >= 14:
            total -= 240
        elif hour >= 12:
            total -= 120
    if return_flight is not None:
        hour = return_flight.departure.hour
        if hour <= 12:
            total -= 360
        elif hour <= 16:
            total -= 180
    return max(120, total)
