import logging
from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.db.session import get_db_session
from travel_agency.redis import get_redis

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", summary="Health check", description="Checks DB and Redis connectivity.")
async def health_check(db: AsyncSession = Depends(get_db_session), redis: Redis = Depends(get_redis)):
    checks = {"database": "ok", "redis": "ok"}
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        checks["database"] = "unavailable"
    try:
        await redis.ping()
    except Exception as e:
        logger.error(f"Redis health check failed: {e}", exc_info=True)
        checks["redis"] = "unavailable"
    status = "ok" if all(v == "ok" for v in checks.values()) else "degraded"
    return {"status": status, **checks}
