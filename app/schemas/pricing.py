from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from app.core.enums import VehicleHint


class LatLng(BaseModel):
    lat: float
    lng: float


class DrivingDistance(BaseModel):
    distance_km: float
    duration_minutes: int


class PricingRequest(BaseModel):
    direction: str
    origin: str
    destination: str
    passenger_count: int
    preferred_vehicle: Optional[VehicleHint] = None
    preferred_rate_key: Optional[str] = None
    origin_address: Optional[str] = None
    destination_address: Optional[str] = None
    origin_lat_lng: Optional[LatLng] = None
    destination_lat_lng: Optional[LatLng] = None


class DistanceDetails(BaseModel):
    km: float
    duration_minutes: int


class PricingBreakdown(BaseModel):
    base_fare: float
    additional_passenger_charge: float
    distance_charge: float
    extra_kilometer_charge: float
    total: float


class PricingResult(BaseModel):
    base_rate: Optional[int] = None
    vehicle_key: Optional[str] = None
    available_vehicles: List[str] = []
    rates_table: Optional[Dict[str, float]] = None
    distance_rule_applied: bool = False
    distance_details: Optional[DistanceDetails] = None
    breakdown: Optional[PricingBreakdown] = None
    distance_rule: Optional[Dict[str, Any]] = None


class AdminPricingRequest(PricingRequest):
    vehicle_selections: Optional[List[str]] = None
