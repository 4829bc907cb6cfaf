"""Driving distance lookups against the Google Directions API"""
import logging
import math
import time
from typing import Any, Mapping, Optional, Protocol, Union

import httpx

from app.core.config import settings
from app.core.errors import MapsError
from app.core.metrics import distance_lookups, distance_lookup_duration
from app.schemas.pricing import DrivingDistance, LatLng
from app.utils.rounding import round_half_up

logger = logging.getLogger(__name__)

Place = Union[str, LatLng, Mapping[str, Any]]


class DistanceProvider(Protocol):
    async def get_driving_distance(self, origin: Place, destination: Place) -> DrivingDistance:
        ...


def encode_place(value: Place) -> str:
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            raise MapsError("EMPTY_ADDRESS", 400)
        return trimmed

    if isinstance(value, LatLng):
        lat, lng = value.lat, value.lng
    elif isinstance(value, Mapping):
        lat, lng = value.get("lat"), value.get("lng")
    else:
        raise MapsError("INVALID_COORDINATES", 400)

    for coord in (lat, lng):
        if isinstance(coord, bool) or not isinstance(coord, (int, float)) or not math.isfinite(coord):
            raise MapsError("INVALID_COORDINATES", 400)
    return f"{lat},{lng}"


def _positive_number(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def select_shortest_route(payload: Any) -> DrivingDistance:
    """Pick the shortest alternative whose first leg has distance and duration."""
    if not isinstance(payload, Mapping):
        raise MapsError("INVALID_ROUTE_RESPONSE", 502)

    status = payload.get("status")
    if status and status != "OK":
        raise MapsError("NO_ROUTE_FOUND", 422, status)

    best_meters: Optional[float] = None
    best_seconds: Optional[float] = None

    for route in payload.get("routes") or []:
        legs = route.get("legs") if isinstance(route, Mapping) else None
        if not legs or not isinstance(legs[0], Mapping):
            continue
        leg = legs[0]
        meters = _positive_number((leg.get("distance") or {}).get("value"))
        seconds = _positive_number((leg.get("duration") or {}).get("value"))
        if meters is None or seconds is None:
            continue
        if best_meters is None or meters < best_meters:
            best_meters = meters
            best_seconds = seconds

    if best_meters is None or best_seconds is None:
        raise MapsError("NO_ROUTE_FOUND", 422, status)

    return DrivingDistance(
        distance_km=round_half_up(best_meters / 10) / 100,
        duration_minutes=round_half_up(best_seconds / 60),
    )


class GoogleDirectionsProvider:

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        region: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url or settings.DIRECTIONS_API_URL
        self.region = region or settings.DIRECTIONS_REGION
        timeout = timeout if timeout is not None else settings.DIRECTIONS_TIMEOUT
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get_driving_distance(self, origin: Place, destination: Place) -> DrivingDistance:
        if not self.api_key:
            raise MapsError("MISSING_MAPS_SERVER_KEY", 500)

        params = {
            "origin": encode_place(origin),
            "destination": encode_place(destination),
            "mode": "driving",
            "region": self.region,
            "alternatives": "true",
            "key": self.api_key,
        }

        start_time = time.time()
        try:
            result = await self._request(params)
        except MapsError as e:
            distance_lookups.labels(status=e.code).inc()
            raise
        finally:
            distance_lookup_duration.observe(time.time() - start_time)

        distance_lookups.labels(status="ok").inc()
        return result

    async def _request(self, params: dict) -> DrivingDistance:
        try:
            response = await self._client.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Directions request failed: {e}")
            raise MapsError("DIRECTIONS_REQUEST_FAILED", 502, str(e))

        if response.status_code >= 400:
            logger.warning(f"Directions request returned HTTP {response.status_code}")
            raise MapsError("DIRECTIONS_REQUEST_FAILED", response.status_code)

        try:
            payload = response.json()
        except ValueError:
            raise MapsError("INVALID_ROUTE_RESPONSE", 502)

        return select_shortest_route(payload)

    async def aclose(self):
        await self._client.aclose()
