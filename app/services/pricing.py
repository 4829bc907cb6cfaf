import logging
from typing import Dict, List, Optional

from app.core.enums import TripDirection, VehicleHint
from app.core.errors import PricingError, ServiceError
from app.core.metrics import pricing_calculations
from app.schemas.pricing import (
    DistanceDetails,
    DrivingDistance,
    LatLng,
    PricingBreakdown,
    PricingRequest,
    PricingResult,
)
from app.services.maps import DistanceProvider
from app.services.rate_matrix import DistanceRule, RateMatrix, split_rates
from app.utils.rounding import round_half_up, round_up_to_nickel

logger = logging.getLogger(__name__)

TEST_LOCATION_LABEL = "OT"
TEST_BASE_RATE = 1
TEST_VEHICLE_KEY = "test"

SEVEN_SEATER_MAX_PASSENGERS = 6


def passenger_key_candidates(passenger_count: int) -> List[str]:
    """Rate keys to try for a passenger count, best match first."""
    if passenger_count >= 12:
        return ["12-14", "14"]
    if passenger_count >= 8:
        return ["8-11", "11"]
    if passenger_count == 7:
        return ["7v", "7"]
    if passenger_count == 6:
        return ["6", "6v"]
    if passenger_count <= 0:
        return []
    return [str(passenger_count)]


def uses_seven_seater(passenger_count: int) -> bool:
    return passenger_count <= SEVEN_SEATER_MAX_PASSENGERS


def pick_rate_key(
    rates: Dict[str, float],
    passenger_count: int,
    preferred_vehicle: Optional[str] = None,
    preferred_rate_key: Optional[str] = None,
) -> Optional[str]:
    if preferred_rate_key and rates.get(preferred_rate_key) is not None:
        return preferred_rate_key

    first_key = next(iter(rates), None)
    candidates = passenger_key_candidates(passenger_count)
    if not candidates:
        return first_key

    if preferred_vehicle == VehicleHint.VAN:
        van_key = next((key for key in candidates if "v" in key.lower()), None)
        if van_key and rates.get(van_key) is not None:
            return van_key

    for key in candidates:
        if rates.get(key) is not None:
            return key

    # TODO: confirm with dispatch whether an unmatched passenger count should price as "no price" instead
    return first_key


def compute_distance_fare(rule: DistanceRule, passenger_count: int, distance_km: float) -> PricingBreakdown:
    additional_passengers = max(0, passenger_count - 1) if uses_seven_seater(passenger_count) else 0
    additional_passenger_charge = rule.additional_passenger_fee * additional_passengers
    distance_charge = max(0.0, distance_km - rule.base_distance_km) * rule.per_km_rate
    subtotal = rule.base_fare + additional_passenger_charge + distance_charge

    return PricingBreakdown(
        base_fare=round_up_to_nickel(rule.base_fare),
        additional_passenger_charge=round_up_to_nickel(additional_passenger_charge),
        distance_charge=round_up_to_nickel(distance_charge),
        extra_kilometer_charge=round_up_to_nickel(distance_charge),
        total=round_half_up(round_up_to_nickel(subtotal)),
    )


def target_lat_lng(rule: DistanceRule) -> LatLng:
    target = rule.target
    if not target:
        logger.error(f"Distance rule has no target coordinates: {rule}")
        raise PricingError("MISSING_TARGET_COORDINATES", 500)

    lat = target.get("lat") if isinstance(target, dict) else None
    lng = target.get("lng") if isinstance(target, dict) else None
    for coord in (lat, lng):
        if isinstance(coord, bool) or not isinstance(coord, (int, float)):
            logger.error(f"Distance rule has invalid target coordinates: {target!r}")
            raise PricingError("INVALID_TARGET_COORDINATES", 500)
    return LatLng(lat=lat, lng=lng)


def _address_or_none(value: Optional[str]) -> Optional[str]:
    if value and value.strip():
        return value
    return None


async def measure_distance_for_rule(
    rule: DistanceRule,
    req: PricingRequest,
    distance_provider: DistanceProvider,
) -> DrivingDistance:
    """Drive from the trip's non-airport side to the rule target (or back)."""
    target = target_lat_lng(rule)

    if req.direction == TripDirection.TO_AIRPORT:
        origin = req.origin_lat_lng or _address_or_none(req.origin_address)
        if origin is None:
            logger.warning(f"Distance rule for {req.origin!r} needs an origin address")
            raise PricingError("ORIGIN_ADDRESS_REQUIRED", 422)
        logger.info(f"Requesting driving distance to airport from {origin} to {target}")
        return await distance_provider.get_driving_distance(origin, target)

    if req.direction == TripDirection.FROM_AIRPORT:
        destination = req.destination_lat_lng or _address_or_none(req.destination_address)
        if destination is None:
            logger.warning(f"Distance rule for {req.destination!r} needs a destination address")
            raise PricingError("DESTINATION_ADDRESS_REQUIRED", 422)
        logger.info(f"Requesting driving distance from airport at {target} to {destination}")
        return await distance_provider.get_driving_distance(target, destination)

    logger.error(f"Distance rule used with unsupported direction {req.direction!r}")
    raise PricingError("UNSUPPORTED_DIRECTION", 400)


def is_test_route(origin: str, destination: str) -> bool:
    def _is_test(label: str) -> bool:
        return (label or "").strip().upper() == TEST_LOCATION_LABEL
    return _is_test(origin) and _is_test(destination)


async def calculate_pricing(
    req: PricingRequest,
    matrix: RateMatrix,
    distance_provider: DistanceProvider,
) -> PricingResult:
    try:
        result = await _calculate_pricing(req, matrix, distance_provider)
    except ServiceError:
        pricing_calculations.labels(outcome="error").inc()
        raise
    return result


async def _calculate_pricing(
    req: PricingRequest,
    matrix: RateMatrix,
    distance_provider: DistanceProvider,
) -> PricingResult:
    if is_test_route(req.origin, req.destination):
        logger.info("Test route detected, returning fixed test rate")
        pricing_calculations.labels(outcome="test_route").inc()
        return PricingResult(
            base_rate=TEST_BASE_RATE,
            vehicle_key=TEST_VEHICLE_KEY,
            available_vehicles=[TEST_VEHICLE_KEY],
            rates_table={TEST_VEHICLE_KEY: TEST_BASE_RATE},
        )

    if req.passenger_count <= 0:
        raise PricingError("INVALID_PASSENGER_COUNT", 400)

    logger.info(
        f"Pricing {req.direction}: {req.origin!r} -> {req.destination!r}, "
        f"{req.passenger_count} passengers, vehicle={req.preferred_vehicle}"
    )

    rates = matrix.lookup(req.direction, req.origin, req.destination)
    route = split_rates(rates)
    numeric, rule = route.numeric, route.distance_rule
    available_vehicles = list(numeric)

    vehicle_key = pick_rate_key(numeric, req.passenger_count, req.preferred_vehicle, req.preferred_rate_key)
    raw_rate = numeric.get(vehicle_key) if vehicle_key else None
    base_rate = round_half_up(raw_rate) if raw_rate is not None else None
    apply_rule = (
        rule is not None
        and req.passenger_count <= SEVEN_SEATER_MAX_PASSENGERS
        and not req.preferred_rate_key
    )

    if rates is None or (rule is None and base_rate is None):
        logger.warning(
            f"No applicable rate for {req.origin!r} -> {req.destination!r} "
            f"({req.passenger_count} passengers); available: {available_vehicles}"
        )
        pricing_calculations.labels(outcome="no_price").inc()
        return PricingResult(available_vehicles=available_vehicles)

    if not apply_rule:
        logger.info(f"Static rate matched: {vehicle_key}={base_rate}")
        pricing_calculations.labels(outcome="static" if base_rate is not None else "no_price").inc()
        return PricingResult(
            base_rate=base_rate,
            vehicle_key=vehicle_key,
            available_vehicles=available_vehicles,
            rates_table=numeric,
        )

    distance = await measure_distance_for_rule(rule, req, distance_provider)
    breakdown = compute_distance_fare(rule, req.passenger_count, distance.distance_km)
    logger.info(
        f"Distance rule applied: {distance.distance_km} km, "
        f"{req.passenger_count} passengers, total={breakdown.total}"
    )
    pricing_calculations.labels(outcome="distance_rule").inc()

    return PricingResult(
        base_rate=int(breakdown.total),
        vehicle_key=vehicle_key,
        available_vehicles=available_vehicles,
        rates_table=numeric,
        distance_rule_applied=True,
        distance_details=DistanceDetails(
            km=distance.distance_km,
            duration_minutes=distance.duration_minutes,
        ),
        breakdown=breakdown,
        distance_rule=rule.to_dict(),
    )
