from typing import AsyncGenerator
from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool

from travel_agency.core.config import settings

# seat locks, seat-map cache and rate-limit counters share this pool
redis_pool = ConnectionPool.from_url(
    settings.REDIS_URL,
    decode_responses=True,
    max_connections=settings.REDIS_MAX_CONNECTIONS,
    health_check_interval=30,
)
redis_client = Redis(connection_pool=redis_pool)


async def get_redis() -> AsyncGenerator[Redis, None]:
    yield redis_client


async def close_redis():
    await redis_client.aclose()
    await redis_pool.disconnect()
