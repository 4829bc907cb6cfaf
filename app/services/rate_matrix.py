"""Rate matrix loading and route lookup.

The authored matrix only describes trips *to* the airport. At load time the
``From the Airport`` direction is derived by mirroring every
``To the Airport[origin][destination]`` entry into
``From the Airport[destination][origin]``. Other authored directions are copied
through unchanged. Entries are not validated here; malformed rates are kept as
they are and rejected when a route is priced.
"""
import copy
import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Set, Union

from app.core.enums import TripDirection

logger = logging.getLogger(__name__)

DISTANCE_RULE_KEY = "_distanceRule"

VehicleRates = Dict[str, Any]
Routes = Dict[str, Dict[str, VehicleRates]]


@dataclass(frozen=True)
class DistanceRule:
    base_fare: float
    base_distance_km: float
    per_km_rate: float
    additional_passenger_fee: float
    target: Any

    def to_dict(self) -> dict:
        data = asdict(self)
        data["target"] = copy.deepcopy(self.target)
        return data


@dataclass
class RouteRates:
    numeric: Dict[str, float]
    distance_rule: Optional[DistanceRule] = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _items(value: Any) -> list:
    # Malformed entries contribute nothing but are never fatal.
    return list(value.items()) if isinstance(value, Mapping) else []


def build_rate_matrix(authored: Mapping[str, Any]) -> Dict[str, Routes]:
    """Derive the bidirectional matrix. Never shares objects with ``authored``."""
    to_airport = authored.get(TripDirection.TO_AIRPORT.value) or {}

    from_airport: Routes = {}
    for origin, destinations in _items(to_airport):
        for destination, rates in _items(destinations):
            from_airport.setdefault(destination, {})[origin] = copy.deepcopy(rates)

    matrix: Dict[str, Routes] = {
        TripDirection.TO_AIRPORT.value: copy.deepcopy(to_airport),
        TripDirection.FROM_AIRPORT.value: from_airport,
    }

    for direction, routes in authored.items():
        if direction in (TripDirection.TO_AIRPORT.value, TripDirection.FROM_AIRPORT.value):
            continue
        matrix[direction] = copy.deepcopy(routes)

    return matrix


def parse_distance_rule(value: Any) -> Optional[DistanceRule]:
    if not isinstance(value, Mapping) or value.get("type") != "distance":
        return None
    try:
        return DistanceRule(
            base_fare=float(value["baseFare"]),
            base_distance_km=float(value["baseDistanceKm"]),
            per_km_rate=float(value["perKmRate"]),
            additional_passenger_fee=float(value["additionalPassengerFee"]),
            target=copy.deepcopy(value.get("target")),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error(f"Ignoring malformed distance rule {value!r}: {e}")
        return None


def split_rates(rates: Optional[Mapping[str, Any]]) -> RouteRates:
    """Separate flat fares from the route's distance rule."""
    numeric: Dict[str, float] = {}
    distance_rule: Optional[DistanceRule] = None

    if not rates or not isinstance(rates, Mapping):
        return RouteRates(numeric=numeric)

    for key, value in rates.items():
        if key == DISTANCE_RULE_KEY:
            distance_rule = parse_distance_rule(value)
            continue
        if _is_number(value):
            numeric[key] = value

    return RouteRates(numeric=numeric, distance_rule=distance_rule)


class RateMatrix:
    """Read-only view over the derived matrix."""

    def __init__(self, authored: Mapping[str, Any]):
        self._routes = build_rate_matrix(authored)

    @property
    def directions(self) -> list:
        return list(self._routes)

    def lookup(self, direction: str, origin: str, destination: str) -> Optional[VehicleRates]:
        group = self._routes.get(str(direction))
        if not isinstance(group, Mapping):
            logger.warning(f"No rates for direction {direction!r}")
            return None

        destinations = group.get(origin)
        if not isinstance(destinations, Mapping):
            logger.warning(f"No destinations for origin {origin!r} ({direction})")
            return None

        rates = destinations.get(destination)
        if rates is None:
            logger.warning(
                f"No rates for {origin!r} -> {destination!r} ({direction}); "
                f"known destinations: {sorted(destinations)}"
            )
        return rates

    def route_count(self) -> int:
        return sum(
            len(_items(destinations))
            for routes in self._routes.values()
            for _, destinations in _items(routes)
        )

    def location_labels(self) -> Set[str]:
        labels: Set[str] = set()
        for routes in self._routes.values():
            for origin, destinations in _items(routes):
                labels.add(origin)
                labels.update(destination for destination, _ in _items(destinations))
        return labels

    def as_dict(self) -> Dict[str, Routes]:
        return copy.deepcopy(self._routes)


def load_rate_matrix(path: Union[str, Path]) -> RateMatrix:
    with open(path, encoding="utf-8") as fh:
        authored = json.load(fh)
    matrix = RateMatrix(authored)
    logger.info(f"Loaded rate matrix from {path}: {matrix.route_count()} routes")
    return matrix
