import logging
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from travel_agency.core.config import get_settings
from travel_agency.db.base import Base

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # local runs without postgres, wait on the file lock instead of failing
        return {"connect_args": {"timeout": 30}}
    return {"pool_pre_ping": True, "pool_size": settings.DB_POOL_SIZE, "max_overflow": settings.DB_MAX_OVERFLOW}


engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, **_engine_options(settings.DATABASE_URL))

async_session_factory = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request, closed when the response is sent."""
    async with async_session_factory() as session:
        yield session


async def init_db() -> None:
    """Create missing tables. Development only."""
    import travel_agency.models  # noqa: F401  registers every mapper

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready (%s)", engine.url.render_as_string(hide_password=True))
