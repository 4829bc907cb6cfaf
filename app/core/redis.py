import logging
from typing import Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
from app.core.config import settings

logger = logging.getLogger(__name__)

redis: Optional[Redis] = None

async def init_redis() -> Optional[Redis]:
    global redis
    if not settings.REDIS_URL:
        logger.info("REDIS_URL not set; caching, rate limiting and counters disabled")
        return None
    try:
        redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        await redis.ping()
        logger.info("Connected to Redis")
        return redis
    except (RedisError, OSError) as e:
        logger.error(f"Failed to connect to Redis: {e}")
        redis = None
        raise

async def close_redis():
    global redis
    if redis:
        await redis.aclose()
        redis = None

def get_redis() -> Optional[Redis]:
    """The shared client, or None when Redis is not configured."""
    return redis
