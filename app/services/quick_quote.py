"""Instant estimates from a pair of free-text addresses.

The route is priced from the rate matrix when the addresses can be mapped onto
a known service area and terminal. Otherwise a generic distance/time estimate
is offered for a few areas, capped so that long trips go to dispatch instead.
"""
import logging
import math
import re
import unicodedata
import uuid
from dataclasses import dataclass
from typing import List, Optional

from app.core.config import settings
from app.core.enums import PricingSource, TripDirection
from app.core.errors import ServiceError
from app.schemas.pricing import DrivingDistance, LatLng, PricingRequest
from app.schemas.quote import QuickQuoteRequest
from app.services.locations import LOCATION_DIRECTORY
from app.services.maps import DistanceProvider
from app.services.pricing import calculate_pricing, TEST_LOCATION_LABEL
from app.services.rate_matrix import RateMatrix
from app.utils.rounding import round_half_up

logger = logging.getLogger(__name__)

MAX_PASSENGERS = 14
EARTH_RADIUS_KM = 6371.0
ABBOTSFORD_ANY_ADDRESS = "Abbotsford (Any Address)"
FALLBACK_ALLOWED_AREAS = {ABBOTSFORD_ANY_ADDRESS, TEST_LOCATION_LABEL}
ANY_ADDRESS_PATTERN = re.compile(r"\(Any Address\)", re.IGNORECASE)

KNOWN_CITY_OVERRIDES = {
    "langley township bc": "Langley (Any Address)",
    "langley bc": "Langley (Any Address)",
    "city of langley": "Langley (Any Address)",
    "abbotsford bc": ABBOTSFORD_ANY_ADDRESS,
    "surrey bc": "Surrey (Any Address)",
}

_ABBREVIATIONS = [
    (re.compile(r"\btwp\b"), "township"),
    (re.compile(r"\bcity of\b"), " "),
    (re.compile(r"\bdistrict municipality\b"), " "),
    (re.compile(r"\bst\b"), "street"),
    (re.compile(r"\brd\b"), "road"),
]


def normalize_text(value: Optional[str]) -> str:
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9]+", " ", stripped).strip()
    for pattern, replacement in _ABBREVIATIONS:
        text = pattern.sub(replacement, text)
    return " ".join(text.split())


def clamp_passengers(value) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number):
        return 1
    return min(MAX_PASSENGERS, max(1, round_half_up(number)))


def round_to_nearest_five(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return max(0, round_half_up(value / 5) * 5)


def compute_estimate(distance_km: float, duration_minutes: float, passengers: int) -> int:
    """Generic fare for trips the matrix cannot price."""
    base_fare = 85
    per_km = 2.15
    time_charge = duration_minutes * 0.35
    passenger_fee = max(0, passengers - 2) * 7.5
    distance_surcharge = 25 if distance_km > 90 else 0

    raw_total = base_fare + distance_km * per_km + time_charge + passenger_fee + distance_surcharge
    return max(75, round_to_nearest_five(raw_total))


def haversine_km(a: LatLng, lat: float, lng: float) -> float:
    d_lat = math.radians(lat - a.lat)
    d_lng = math.radians(lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(lat)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


@dataclass(frozen=True)
class ServiceArea:
    label: str
    keyword: str


@dataclass(frozen=True)
class TerminalMatcher:
    label: str
    keywords: List[str]
    lat: float
    lng: float
    place_ids: List[str]
    proximity_radius_km: float


@dataclass(frozen=True)
class MatrixRoute:
    direction: TripDirection
    origin_label: str
    destination_label: str


def build_service_areas(matrix: RateMatrix) -> List[ServiceArea]:
    """'(Any Address)' labels from the matrix, longest keyword first."""
    areas = []
    for label in matrix.location_labels():
        if not ANY_ADDRESS_PATTERN.search(label):
            continue
        keyword = normalize_text(re.sub(r"\(.*?\)", " ", label))
        if keyword:
            areas.append(ServiceArea(label=label, keyword=keyword))
    return sorted(areas, key=lambda area: (-len(area.keyword), area.label))


def build_terminal_matchers() -> List[TerminalMatcher]:
    matchers = []
    for label, terminal in LOCATION_DIRECTORY.items():
        keywords = [k for k in (normalize_text(label), normalize_text(terminal.formatted_address)) if k]
        matchers.append(TerminalMatcher(
            label=label,
            keywords=list(dict.fromkeys(keywords)),
            lat=terminal.latitude,
            lng=terminal.longitude,
            place_ids=list(terminal.place_ids),
            proximity_radius_km=terminal.proximity_radius_km,
        ))
    return matchers


TERMINAL_MATCHERS = build_terminal_matchers()


def match_service_area(address: Optional[str], areas: List[ServiceArea]) -> Optional[str]:
    normalized = normalize_text(address)
    if not normalized:
        return None
    override = KNOWN_CITY_OVERRIDES.get(normalized)
    if override:
        return override
    for area in areas:
        if area.keyword in normalized:
            return area.label
    return None


def match_terminal(
    address: Optional[str],
    coords: Optional[LatLng] = None,
    place_id: Optional[str] = None,
) -> Optional[str]:
    if place_id:
        for terminal in TERMINAL_MATCHERS:
            if place_id in terminal.place_ids:
                return terminal.label

    normalized = normalize_text(address)
    if not normalized:
        return None
    for terminal in TERMINAL_MATCHERS:
        if any(keyword in normalized for keyword in terminal.keywords):
            return terminal.label

    if coords:
        for terminal in TERMINAL_MATCHERS:
            if haversine_km(coords, terminal.lat, terminal.lng) <= terminal.proximity_radius_km:
                return terminal.label
    return None


def determine_matrix_route(
    pickup_area: Optional[str],
    dropoff_area: Optional[str],
    pickup_terminal: Optional[str],
    dropoff_terminal: Optional[str],
) -> Optional[MatrixRoute]:
    if dropoff_terminal and pickup_area:
        return MatrixRoute(TripDirection.TO_AIRPORT, pickup_area, dropoff_terminal)
    # The derived matrix keys airport departures by terminal first.
    if pickup_terminal and dropoff_area:
        return MatrixRoute(TripDirection.FROM_AIRPORT, pickup_terminal, dropoff_area)
    return None


@dataclass
class QuickQuoteOutcome:
    log_id: str
    passengers: int
    distance: DrivingDistance
    pricing_source: PricingSource
    amount: float
    estimate: Optional[float]
    suppressed: bool
    route: Optional[MatrixRoute] = None


async def generate_quick_quote(
    req: QuickQuoteRequest,
    matrix: RateMatrix,
    distance_provider: DistanceProvider,
) -> QuickQuoteOutcome:
    """Price a free-text trip. Distance provider errors propagate."""
    pickup_address = req.pickup_address.strip()
    dropoff_address = req.dropoff_address.strip()
    passengers = clamp_passengers(req.passengers)
    pickup_place_id = (req.pickup_place_id or "").strip() or None
    dropoff_place_id = (req.dropoff_place_id or "").strip() or None

    distance = await distance_provider.get_driving_distance(
        req.pickup_lat_lng or pickup_address,
        req.dropoff_lat_lng or dropoff_address,
    )

    areas = build_service_areas(matrix)
    pickup_area = match_service_area(pickup_address, areas)
    dropoff_area = match_service_area(dropoff_address, areas)
    route = determine_matrix_route(
        pickup_area,
        dropoff_area,
        match_terminal(pickup_address, req.pickup_lat_lng, pickup_place_id),
        match_terminal(dropoff_address, req.dropoff_lat_lng, dropoff_place_id),
    )

    matrix_quote: Optional[int] = None
    if route:
        try:
            pricing = await calculate_pricing(
                PricingRequest(
                    direction=route.direction.value,
                    origin=route.origin_label,
                    destination=route.destination_label,
                    passenger_count=passengers,
                    origin_address=pickup_address,
                    destination_address=dropoff_address,
                    origin_lat_lng=req.pickup_lat_lng,
                    destination_lat_lng=req.dropoff_lat_lng,
                ),
                matrix,
                distance_provider,
            )
            if pricing.base_rate is not None:
                matrix_quote = round_half_up(pricing.base_rate)
        except ServiceError as e:
            logger.warning(f"Matrix pricing failed for quick quote route {route}: {e.code}")

    fallback_amount: Optional[int] = None
    if matrix_quote is None and (pickup_area in FALLBACK_ALLOWED_AREAS or dropoff_area in FALLBACK_ALLOWED_AREAS):
        fallback_amount = compute_estimate(distance.distance_km, distance.duration_minutes, passengers)

    source = PricingSource.MATRIX if matrix_quote is not None else PricingSource.FALLBACK
    suppressed = source == PricingSource.FALLBACK and (
        fallback_amount is None or fallback_amount > settings.QUICK_QUOTE_PRICE_CAP
    )
    estimate = matrix_quote if matrix_quote is not None else fallback_amount

    return QuickQuoteOutcome(
        log_id=uuid.uuid4().hex,
        passengers=passengers,
        distance=distance,
        pricing_source=source,
        amount=estimate if estimate is not None else 0,
        estimate=estimate,
        suppressed=suppressed,
        route=route,
    )
