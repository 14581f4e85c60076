import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from travel_agency.api import (routes_affiliate, routes_billing, routes_booking, routes_contact, routes_customer,
                               routes_fleet, routes_health, routes_package, routes_user, routes_webhook)
from travel_agency.core.config import settings
from travel_agency.core.exceptions import RateLimitExceededError, TravelAgencyError
from travel_agency.core.logging_config import configure_logging
from travel_agency.db import session
from travel_agency.redis import close_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (%s)", settings.PROJECT_NAME, settings.ENV)
    if settings.ENV == "development":
        await session.init_db()
    yield
    await close_redis()
    logger.info("Shut down %s", settings.PROJECT_NAME)


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # remember the affiliate that sent the visitor until a booking consumes it
    @app.middleware("http")
    async def affiliate_ref_cookie(request: Request, call_next):
        response = await call_next(request)
        ref = request.query_params.get("ref")
        if ref and ref.strip():
            response.set_cookie(
                settings.AFFILIATE_COOKIE_NAME,
                ref.strip().upper(),
                max_age=settings.AFFILIATE_COOKIE_DAYS * 24 * 60 * 60,
                path="/",
                samesite="lax",
            )
        return response

    for router in (routes_health.router, routes_package.router, routes_fleet.router, routes_booking.router,
                   routes_affiliate.router, routes_contact.router, routes_customer.router,
                   routes_user.router, routes_billing.router, routes_webhook.router):
        app.include_router(router, prefix=settings.API_PREFIX)

    @app.exception_handler(TravelAgencyError)
    async def travel_agency_error_handler(request: Request, ex: TravelAgencyError):
        if ex.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, ex.message)
        headers = None
        if isinstance(ex, RateLimitExceededError):
            headers = {"Retry-After": str(ex.retry_after)}
        return JSONResponse(status_code=ex.status_code, content={"error": ex.message}, headers=headers)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, ex: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, ex, exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/")
    async def root():
        return {"message": f"{settings.PROJECT_NAME} is running"}

    return app


app = create_app()
