from pydantic import BaseModel
from typing import Any, Optional

from app.core.enums import PricingSource, VehicleHint
from app.schemas.pricing import LatLng


class QuoteRequest(BaseModel):
    direction: str
    origin: str
    destination: str
    passenger_count: int
    preferred_vehicle: Optional[VehicleHint] = None
    origin_address: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    origin_place_id: Optional[str] = None
    destination_address: Optional[str] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    destination_place_id: Optional[str] = None


class QuickQuoteRequest(BaseModel):
    pickup_address: str = ""
    dropoff_address: str = ""
    passengers: Any = None
    pickup_place_id: Optional[str] = None
    dropoff_place_id: Optional[str] = None
    pickup_lat_lng: Optional[LatLng] = None
    dropoff_lat_lng: Optional[LatLng] = None


class Estimate(BaseModel):
    amount: float
    currency: str


class QuickQuoteResponse(BaseModel):
    ok: bool = True
    id: str
    estimate: Estimate
    distance_km: float
    duration_minutes: int
    passengers: int
    pricing_source: PricingSource
