from typing import Optional
from fastapi import APIRouter, Depends, Request, Response
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.config import settings
from travel_agency.core.security import get_current_user, get_optional_user, require_admin
from travel_agency.crud.booking import crud_booking
from travel_agency.db.session import get_db_session
from travel_agency.models.booking import BookingStatus
from travel_agency.models.user import User
from travel_agency.redis import get_redis
from travel_agency.schemas.booking import BookingCreate, BookingListResponse, BookingResponse, BookingUpdate
from travel_agency.services.rate_limit import rate_limiter

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"]
)


@router.post("", response_model=BookingResponse, status_code=201, dependencies=[Depends(rate_limiter("bookings"))])
async def create_booking(
        data: BookingCreate,
        request: Request,
        response: Response,
        db: AsyncSession = Depends(get_db_session),
        redis: Redis = Depends(get_redis),
        user: Optional[User] = Depends(get_optional_user)):
    ref_code = request.cookies.get(settings.AFFILIATE_COOKIE_NAME)
    booking = await crud_booking.create_booking(db, redis, data, user=user, ref_code=ref_code)
    if ref_code:
        response.delete_cookie(settings.AFFILIATE_COOKIE_NAME)
    return booking


@router.get("", response_model=BookingListResponse, dependencies=[Depends(require_admin)])
async def list_bookings(
        package_id: Optional[int] = None,
        status: Optional[BookingStatus] = None,
        db: AsyncSession = Depends(get_db_session)):
    return await crud_booking.list_bookings(db, package_id=package_id, status=status)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
        booking_id: int,
        db: AsyncSession = Depends(get_db_session),
        user: User = Depends(get_current_user)):
    return await crud_booking.get_booking(db, booking_id, user)


@router.put("/{booking_id}", response_model=BookingResponse, dependencies=[Depends(require_admin)])
async def update_booking(
        booking_id: int,
        data: BookingUpdate,
        db: AsyncSession = Depends(get_db_session),
        redis: Redis = Depends(get_redis)):
    return await crud_booking.update_booking(db, redis, booking_id, data)
