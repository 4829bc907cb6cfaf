import logging
from datetime import datetime, timezone
from typing import Optional

from redis.exceptions import RedisError

from app.core.redis import get_redis

logger = logging.getLogger(__name__)

COUNTER_TTL = 60 * 60 * 24 * 35  # keep about a month of daily counts


def daily_counter_key(name: str, now: Optional[datetime] = None) -> str:
    day = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    return f"counter:{name}:{day}"


async def increment_daily_counter(name: str) -> Optional[int]:
    redis = get_redis()
    if redis is None:
        return None
    key = daily_counter_key(name)
    try:
        value = await redis.incr(key)
        await redis.expire(key, COUNTER_TTL)
        return value
    except RedisError as e:
        logger.warning(f"Daily counter {name} not updated: {e}")
        return None
