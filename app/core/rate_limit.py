from fastapi import HTTPException
from app.core.redis import get_redis
from app.core.config import settings
from app.core.metrics import rate_limit_exceeded

async def check_rate_limit(client_key: str):
    redis = get_redis()
    if redis is None:
        return
    key = f"rl:{client_key}"
    current = await redis.get(key)
    if current is None:
        await redis.set(key, "1", ex=settings.RATE_LIMIT_WINDOW)
        return
    count = int(current)
    if count >= settings.RATE_LIMIT:
        rate_limit_exceeded.inc()
        raise HTTPException(status_code=429, detail="Rate limit exceeded")
    await redis.incr(key)
