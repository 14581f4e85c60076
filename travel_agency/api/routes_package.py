from typing import Optional
from fastapi import APIRouter, Depends, Query
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.security import require_admin
from travel_agency.crud.package import crud_package
from travel_agency.db.session import get_db_session
from travel_agency.models.package import PackageStatus
from travel_agency.redis import get_redis
from travel_agency.schemas.package import PackageCreate, PackageResponse, PackageSeatsResponse, PackageUpdate

router = APIRouter(
    prefix="/packages",
    tags=["packages"]
)


@router.get("", response_model=list[PackageResponse])
async def list_packages(
        destination: Optional[str] = None,
        min_price: Optional[int] = Query(default=None, ge=0),
        max_price: Optional[int] = Query(default=None, ge=0),
        min_duration: Optional[int] = Query(default=None, ge=1),
        max_duration: Optional[int] = Query(default=None, ge=1),
        status: PackageStatus = PackageStatus.PUBLISHED,
        featured: Optional[bool] = None,
        search: Optional[str] = None,
        db: AsyncSession = Depends(get_db_session)):
    return await crud_package.list_packages(
        db, destination=destination, min_price=min_price, max_price=max_price,
        min_duration=min_duration, max_duration=max_duration, status=status,
        featured=featured, search=search)


@router.post("", response_model=PackageResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_package(data: PackageCreate, db: AsyncSession = Depends(get_db_session)):
    return await crud_package.create_package(db, data)


@router.get("/{package_id}", response_model=PackageResponse)
async def get_package(package_id: int, db: AsyncSession = Depends(get_db_session)):
    return await crud_package.get_package(db, package_id)


@router.put("/{package_id}", response_model=PackageResponse, dependencies=[Depends(require_admin)])
async def update_package(
        package_id: int,
        data: PackageUpdate,
        db: AsyncSession = Depends(get_db_session),
        redis: Redis = Depends(get_redis)):
    return await crud_package.update_package(db, package_id, data, redis)


@router.delete("/{package_id}", dependencies=[Depends(require_admin)])
async def delete_package(package_id: int, db: AsyncSession = Depends(get_db_session)):
    await crud_package.delete_package(db, package_id)
    return {"message": "Package deactivated"}


@router.get("/{package_id}/seats", response_model=PackageSeatsResponse)
async def get_package_seats(package_id: int, db: AsyncSession = Depends(get_db_session)):
    return await crud_package.get_package_seats(db, package_id)


@router.get("/{package_id}/seat-map")
async def get_package_seat_map(
        package_id: int,
        db: AsyncSession = Depends(get_db_session),
        redis: Redis = Depends(get_redis)):
    return await crud_package.get_seat_layout(db, package_id, redis)
