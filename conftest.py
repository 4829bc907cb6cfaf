import copy
import inspect

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.core.config import settings
from app.core.enums import UserRole
from app.core.errors import MapsError
from app.core.resources import get_distance_provider, get_rate_matrix
from app.core.security import create_access_token
from app.schemas.pricing import DrivingDistance
from app.services.rate_matrix import RateMatrix


YXX_TARGET = {"label": "Abbotsford International Airport (YXX)", "lat": 49.0252, "lng": -122.3601}

AUTHORED_MATRIX = {
    "To the Airport": {
        "Abbotsford (Any Address)": {
            "Vancouver International Airport (YVR)": {"1": 80, "6": 140},
            "Abbotsford International Airport (YXX)": {
                "_distanceRule": {
                    "type": "distance",
                    "baseFare": 85,
                    "baseDistanceKm": 20,
                    "perKmRate": 2,
                    "additionalPassengerFee": 10,
                    "target": YXX_TARGET,
                },
            },
        },
        "Langley (Any Address)": {
            "Vancouver International Airport (YVR)": {
                "1": 105, "2": 115, "3": 125, "4": 135, "5": 145,
                "6": 155, "7v": 165, "8-11": 225, "12-14": 280,
            },
            "Abbotsford International Airport (YXX)": {
                "_distanceRule": {
                    "type": "distance",
                    "baseFare": 45,
                    "baseDistanceKm": 10,
                    "perKmRate": 2.25,
                    "additionalPassengerFee": 10,
                    "target": YXX_TARGET,
                },
                "7v": 110,
                "8-11": 150,
            },
        },
    },
    "Cruise & Ferry": {
        "Abbotsford (Any Address)": {
            "Canada Place Cruise Terminal in Vancouver": {"1": 150, "6": 200},
        },
    },
}


class FakeDistanceProvider:
    """Records lookups and answers with a fixed distance or error."""

    def __init__(self, distance_km=35.0, duration_minutes=30, error=None):
        self.distance_km = distance_km
        self.duration_minutes = duration_minutes
        self.error = error
        self.calls = []

    async def get_driving_distance(self, origin, destination):
        self.calls.append((origin, destination))
        if self.error is not None:
            raise self.error
        return DrivingDistance(distance_km=self.distance_km, duration_minutes=self.duration_minutes)


@pytest.fixture
def authored_matrix():
    return copy.deepcopy(AUTHORED_MATRIX)


@pytest.fixture
def rate_matrix(authored_matrix):
    return RateMatrix(authored_matrix)


@pytest.fixture
def distance_provider():
    return FakeDistanceProvider()


@pytest.fixture
def make_distance_provider():
    return FakeDistanceProvider


@pytest.fixture
def failing_distance_provider():
    return FakeDistanceProvider(error=MapsError("NO_ROUTE_FOUND", 422, "ZERO_RESULTS"))


@pytest.fixture
async def test_client(rate_matrix, distance_provider):
    app.dependency_overrides[get_rate_matrix] = lambda: rate_matrix
    app.dependency_overrides[get_distance_provider] = lambda: distance_provider
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token():
    return create_access_token("admin_1", "dispatch@example.com", [UserRole.ADMIN.value])


@pytest.fixture
def driver_token():
    return create_access_token("driver_1", "driver@example.com", [UserRole.DRIVER.value])


@pytest.fixture
def app_settings():
    """Return application settings"""
    return settings


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "pricing: marks tests related to pricing"
    )
    config.addinivalue_line(
        "markers", "maps: marks tests related to the distance provider"
    )
    config.addinivalue_line(
        "markers", "api: marks tests that go through the HTTP layer"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to handle asyncio tests
    """
    for item in items:
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)
