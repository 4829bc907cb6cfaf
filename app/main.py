from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from redis.exceptions import RedisError
from starlette.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware
from app.api import pricing, quotes
from app.core.config import settings
from app.core.redis import init_redis, close_redis, get_redis
from app.core.resources import init_rate_matrix, init_distance_provider, close_resources, is_ready
from app.core.metrics import request_count, request_duration, redis_connected, get_metrics_text
import time
import logging

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            request_count.labels(
                method=request.method,
                endpoint=request.url.path,
                status=500
            ).inc()
            request_duration.labels(
                method=request.method,
                endpoint=request.url.path
            ).observe(time.time() - start_time)
            raise

        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        request_duration.labels(
            method=request.method,
            endpoint=request.url.path
        ).observe(time.time() - start_time)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting...")

    init_rate_matrix()
    init_distance_provider()

    try:
        redis = await init_redis()
        redis_connected.set(1 if redis is not None else 0)
    except (RedisError, OSError) as e:
        logger.error(f"Redis connection failed, continuing without cache: {e}")
        redis_connected.set(0)

    yield

    logger.info("Application shutting down...")
    await close_redis()
    await close_resources()
    redis_connected.set(0)
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(MetricsMiddleware)

app.include_router(quotes.router)
app.include_router(pricing.router)


@app.get("/metrics", tags=["monitoring"])
async def metrics():
    return Response(
        content=get_metrics_text(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )


@app.get("/health", tags=["monitoring"])
async def health_check():
    return {
        "status": "healthy",
        "service": settings.API_TITLE,
        "version": settings.API_VERSION,
        "dependencies": {
            "redis": "connected" if get_redis() is not None else "disconnected",
            "rate_matrix": "loaded" if is_ready() else "missing",
        }
    }


@app.get("/readiness", tags=["monitoring"])
async def readiness_check():
    if not is_ready():
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": "Rate matrix not loaded"},
        )

    return {
        "ready": True,
        "service": settings.API_TITLE
    }


@app.get("/", tags=["root"])
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics"
    }
