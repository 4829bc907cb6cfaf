"""Process-wide pricing resources, built once at startup"""
import logging
from typing import Optional

from app.core.config import settings
from app.core.metrics import rate_matrix_routes
from app.services.maps import DistanceProvider, GoogleDirectionsProvider
from app.services.rate_matrix import RateMatrix, load_rate_matrix

logger = logging.getLogger(__name__)

rate_matrix: Optional[RateMatrix] = None
distance_provider: Optional[GoogleDirectionsProvider] = None


def init_rate_matrix(path: str | None = None) -> RateMatrix:
    global rate_matrix
    rate_matrix = load_rate_matrix(path or settings.RATE_MATRIX_PATH)
    rate_matrix_routes.set(rate_matrix.route_count())
    return rate_matrix


def init_distance_provider() -> GoogleDirectionsProvider:
    global distance_provider
    if not settings.MAPS_SERVER_KEY:
        logger.warning("MAPS_SERVER_KEY not set; distance-based fares will fail")
    distance_provider = GoogleDirectionsProvider(api_key=settings.MAPS_SERVER_KEY)
    return distance_provider


async def close_resources():
    global rate_matrix, distance_provider
    if distance_provider is not None:
        await distance_provider.aclose()
        distance_provider = None
    rate_matrix = None
    rate_matrix_routes.set(0)


def get_rate_matrix() -> RateMatrix:
    if rate_matrix is None:
        raise RuntimeError("Rate matrix not loaded. Call init_rate_matrix() first.")
    return rate_matrix


def get_distance_provider() -> DistanceProvider:
    if distance_provider is None:
        raise RuntimeError("Distance provider not initialized. Call init_distance_provider() first.")
    return distance_provider


def is_ready() -> bool:
    return rate_matrix is not None
