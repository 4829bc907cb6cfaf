import logging
from fastapi import APIRouter, Depends, HTTPException

from app.core.errors import ServiceError
from app.core.resources import get_distance_provider, get_rate_matrix
from app.core.security import AuthenticatedUser, require_admin
from app.schemas.pricing import AdminPricingRequest, PricingRequest, PricingResult
from app.services.maps import DistanceProvider
from app.services.pricing import calculate_pricing
from app.services.rate_matrix import RateMatrix
from app.services.rate_preferences import derive_preferred_rate_key

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin/pricing", tags=["pricing"])


@router.post("/calculate", response_model=PricingResult)
async def calculate(
    payload: AdminPricingRequest,
    current_user: AuthenticatedUser = Depends(require_admin),
    matrix: RateMatrix = Depends(get_rate_matrix),
    distance_provider: DistanceProvider = Depends(get_distance_provider),
):
    preferred_rate_key = payload.preferred_rate_key or derive_preferred_rate_key(
        payload.passenger_count, payload.vehicle_selections
    )
    req = PricingRequest.model_validate(
        {**payload.model_dump(exclude={"vehicle_selections"}), "preferred_rate_key": preferred_rate_key}
    )

    logger.info(f"Admin {current_user.uid} repricing {req.origin!r} -> {req.destination!r} (key={preferred_rate_key})")
    try:
        return await calculate_pricing(req, matrix, distance_provider)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.code)
