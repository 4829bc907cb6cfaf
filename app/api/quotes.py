"""Public quote endpoints with Redis caching"""
import json
import hashlib
import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.enums import PricingSource
from app.core.errors import ServiceError
from app.core.metrics import cache_hits, cache_misses, quick_quotes
from app.core.rate_limit import check_rate_limit
from app.core.redis import get_redis
from app.core.resources import get_distance_provider, get_rate_matrix
from app.schemas.pricing import LatLng, PricingRequest, PricingResult
from app.schemas.quote import Estimate, QuickQuoteRequest, QuickQuoteResponse, QuoteRequest
from app.services.locations import resolve_location_details
from app.services.maps import DistanceProvider
from app.services.pricing import calculate_pricing
from app.services.quick_quote import generate_quick_quote
from app.services.rate_matrix import RateMatrix
from app.services.webhook import notify_quick_quote_fallback
from app.utils.counters import increment_daily_counter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])

MIN_ADDRESS_LENGTH = 5


def _generate_cache_key(req: QuoteRequest) -> str:
    params_str = json.dumps(req.model_dump(mode="json"), sort_keys=True)
    return f"price:{hashlib.sha256(params_str.encode()).hexdigest()}"


def _lat_lng(lat, lng):
    if lat is None or lng is None:
        return None
    return LatLng(lat=lat, lng=lng)


def build_pricing_request(req: QuoteRequest) -> PricingRequest:
    origin = resolve_location_details(
        req.origin, req.origin_address, req.origin_lat, req.origin_lng, req.origin_place_id
    )
    destination = resolve_location_details(
        req.destination, req.destination_address, req.destination_lat, req.destination_lng,
        req.destination_place_id,
    )
    return PricingRequest(
        direction=req.direction,
        origin=req.origin,
        destination=req.destination,
        passenger_count=req.passenger_count,
        preferred_vehicle=req.preferred_vehicle,
        origin_address=origin.address,
        destination_address=destination.address,
        origin_lat_lng=_lat_lng(origin.lat, origin.lng),
        destination_lat_lng=_lat_lng(destination.lat, destination.lng),
    )


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/calc", response_model=PricingResult)
async def calc_quote(
    req: QuoteRequest,
    matrix: RateMatrix = Depends(get_rate_matrix),
    distance_provider: DistanceProvider = Depends(get_distance_provider),
):

    cache_key = _generate_cache_key(req)
    redis = get_redis()

    if redis is not None:
        try:
            cached = await redis.get(cache_key)
            if cached:
                cache_hits.inc()
                return PricingResult.model_validate_json(cached)
        except (RedisError, ValueError) as e:
            logger.warning(f"Cache retrieval failed: {e}")
        cache_misses.inc()

    try:
        result = await calculate_pricing(build_pricing_request(req), matrix, distance_provider)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.code)

    if result.base_rate is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "NO_PRICE_AVAILABLE", "pricing": result.model_dump(mode="json")},
        )

    if redis is not None:
        try:
            await redis.set(cache_key, result.model_dump_json(), ex=settings.PRICE_CACHE_TTL)
        except RedisError as e:
            logger.warning(f"Cache write failed: {e}")

    return result


@router.post("/quick", response_model=QuickQuoteResponse)
async def quick_quote(
    req: QuickQuoteRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    matrix: RateMatrix = Depends(get_rate_matrix),
    distance_provider: DistanceProvider = Depends(get_distance_provider),
):
    await check_rate_limit(f"quick:{_client_ip(request)}")

    if len(req.pickup_address.strip()) < MIN_ADDRESS_LENGTH:
        raise HTTPException(status_code=400, detail="Enter a pickup address")
    if len(req.dropoff_address.strip()) < MIN_ADDRESS_LENGTH:
        raise HTTPException(status_code=400, detail="Enter a dropoff address")

    try:
        outcome = await generate_quick_quote(req, matrix, distance_provider)
    except ServiceError as e:
        logger.warning(f"Quick quote distance lookup failed: {e.code} ({e.details})")
        raise HTTPException(status_code=e.status_code, detail=e.code)

    await increment_daily_counter("quick_quotes")
    quick_quotes.labels(source=str(outcome.pricing_source), suppressed=str(outcome.suppressed).lower()).inc()

    if outcome.pricing_source != PricingSource.MATRIX:
        background_tasks.add_task(
            notify_quick_quote_fallback,
            log_id=outcome.log_id,
            pickup_address=req.pickup_address.strip(),
            dropoff_address=req.dropoff_address.strip(),
            passengers=outcome.passengers,
            estimate=outcome.amount,
            pricing_source=str(outcome.pricing_source),
        )

    logger.info(
        f"Quick quote {outcome.log_id}: {outcome.passengers} passengers, "
        f"{outcome.distance.distance_km} km, source={outcome.pricing_source}, estimate={outcome.estimate}"
    )

    if outcome.suppressed:
        return JSONResponse(
            status_code=409,
            content={
                "error": "No price available online. We've notified dispatch.",
                "log_id": outcome.log_id,
            },
        )

    return QuickQuoteResponse(
        id=outcome.log_id,
        estimate=Estimate(amount=outcome.amount, currency=settings.CURRENCY),
        distance_km=outcome.distance.distance_km,
        duration_minutes=outcome.distance.duration_minutes,
        passengers=outcome.passengers,
        pricing_source=outcome.pricing_source,
    )
