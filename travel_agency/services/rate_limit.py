import time
from fastapi import Depends, Request
from redis.asyncio import Redis

from travel_agency.core.config import settings
from travel_agency.core.exceptions import RateLimitExceededError
from travel_agency.redis import get_redis

WINDOW_SECONDS = 60


async def check_rate_limit(redis: Redis, scope: str, identity: str, limit: int) -> int:
    """
    Fixed-window counter per scope and caller. Returns the number of calls
    made in the current window, raises RateLimitExceededError past the limit.
    """
    window = int(time.time() // WINDOW_SECONDS)
    key = f"ratelimit:{scope}:{identity}:{window}"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, WINDOW_SECONDS)
    if count > limit:
        retry_after = WINDOW_SECONDS - int(time.time()) % WINDOW_SECONDS
        raise RateLimitExceededError(retry_after)
    return count


def rate_limiter(scope: str):
    """FastAPI dependency limiting a public endpoint per client address."""
    async def dependency(request: Request, redis: Redis = Depends(get_redis)):
        identity = request.client.host if request.client else "anonymous"
        await check_rate_limit(redis, scope, identity, settings.RATE_LIMIT_PER_MINUTE)
    return dependency
