import json
import logging
from typing import Optional
from redis.asyncio import Redis
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from travel_agency.core.config import settings
from travel_agency.core.exceptions import NotFoundError, ValidationFailedError
from travel_agency.models.booking import Booking, BookingStatus
from travel_agency.models.bus import Bus
from travel_agency.models.package import Package, PackageStatus
from travel_agency.schemas.bus import BusSummary
from travel_agency.schemas.package import PackageCreate, PackageUpdate
from travel_agency.services.seat_lock import seat_lock_manager
from travel_agency.services.seat_map import SeatMap
from travel_agency.services.text import slugify

logger = logging.getLogger(__name__)


def seat_layout_cache_key(package_id: int) -> str:
    return f"seat_layout:package:{package_id}"


class CRUDPackage:
    async def list_packages(self,
                            db: AsyncSession,
                            destination: Optional[str] = None,
                            min_price: Optional[int] = None,
                            max_price: Optional[int] = None,
                            min_duration: Optional[int] = None,
                            max_duration: Optional[int] = None,
                            status: Optional[PackageStatus] = PackageStatus.PUBLISHED,
                            featured: Optional[bool] = None,
                            search: Optional[str] = None):
        stmt = (select(Package)
                .options(selectinload(Package.bus))
                .where(Package.is_active.is_(True)))
        if destination:
            stmt = stmt.where(Package.destination.ilike(f"%{destination}%"))
        if min_price is not None:
            stmt = stmt.where(Package.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Package.price <= max_price)
        if min_duration is not None:
            stmt = stmt.where(Package.duration_days >= min_duration)
        if max_duration is not None:
            stmt = stmt.where(Package.duration_days <= max_duration)
        if status is not None:
            stmt = stmt.where(Package.status == status)
        if featured is not None:
            stmt = stmt.where(Package.is_featured.is_(featured))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Package.title.ilike(pattern), Package.description.ilike(pattern)))
        stmt = stmt.order_by(Package.is_featured.desc(), Package.created_at.desc(), Package.id.desc())
        result = await db.execute(stmt)
        return result.scalars().all()

    async def get_package(self, db: AsyncSession, package_id: int, include_inactive: bool = False) -> Package:
        result = await db.execute(
            select(Package)
            .options(selectinload(Package.bus))
            .where(Package.id == package_id)
            .execution_options(populate_existing=True))
        package = result.scalar_one_or_none()
        if package is None or (not include_inactive and not package.is_active):
            raise NotFoundError("Package")
        return package

    async def _check_bus(self, db: AsyncSession, bus_id: Optional[int]):
        if bus_id is None:
            return
        bus = await db.get(Bus, bus_id)
        if bus is None:
            raise NotFoundError("Bus")

    async def create_package(self, db: AsyncSession, data: PackageCreate) -> Package:
        await self._check_bus(db, data.bus_id)
        values = data.model_dump()
        if values["available_seats"] is None:
            values["available_seats"] = values["total_seats"]
        if values["available_seats"] > values["total_seats"] and values["total_seats"] > 0:
            raise ValidationFailedError("available_seats cannot exceed total_seats")
        package = Package(**values, slug=slugify(data.title))
        db.add(package)
        await db.commit()
        logger.info("Created package %s (%s)", package.id, package.slug)
        return await self.get_package(db, package.id, include_inactive=True)

    async def update_package(self, db: AsyncSession, package_id: int, data: PackageUpdate, redis: Redis) -> Package:
        package = await self.get_package(db, package_id, include_inactive=True)
        columns = Package.__table__.c
        # an explicit null only clears columns that may be empty
        changes = {field: value for field, value in data.model_dump(exclude_unset=True).items()
                   if value is not None or columns[field].nullable}
        if "bus_id" in changes:
            await self._check_bus(db, changes["bus_id"])
        for field, value in changes.items():
            setattr(package, field, value)
        if "title" in changes:
            package.slug = slugify(package.title)
        await db.commit()
        await redis.delete(seat_layout_cache_key(package_id))
        logger.info("Updated package %s: %s", package_id, sorted(changes))
        return await self.get_package(db, package_id, include_inactive=True)

    async def delete_package(self, db: AsyncSession, package_id: int) -> None:
        """Soft delete, bookings keep pointing at the package."""
        package = await self.get_package(db, package_id, include_inactive=True)
        package.is_active = False
        await db.commit()
        logger.info("Deactivated package %s", package_id)

    async def get_occupied_seats(self, db: AsyncSession, package_id: int, total_seats: int):
        """
        Occupied seat numbers and passenger totals over the non-canceled bookings.
        Returns (sorted unique seats, bookings count, passengers count).
        """
        result = await db.execute(
            select(Booking.selected_seats, Booking.num_passengers)
            .where(Booking.package_id == package_id)
            .where(Booking.status != BookingStatus.CANCELED))
        rows = result.all()
        occupied = set()
        total_participants = 0
        for selected_seats, num_passengers in rows:
            total_participants += num_passengers
            for seat in selected_seats or []:
                if isinstance(seat, int) and 1 <= seat <= total_seats:
                    occupied.add(seat)
        return sorted(occupied), len(rows), total_participants

    async def get_package_seats(self, db: AsyncSession, package_id: int) -> dict:
        package = await self.get_package(db, package_id, include_inactive=True)
        occupied, total_bookings, total_participants = await self.get_occupied_seats(
            db, package.id, package.total_seats)
        return {
            "package_id": package.id,
            "package_title": package.title,
            "total_seats": package.total_seats,
            "occupied_seats": occupied,
            "available_seats": package.total_seats - len(occupied),
            "total_bookings": total_bookings,
            "total_participants": total_participants,
            "bus": BusSummary.model_validate(package.bus) if package.bus else None,
        }

    async def get_seat_layout(self, db: AsyncSession, package_id: int, redis: Redis) -> dict:
        cached_layout = await redis.get(seat_layout_cache_key(package_id))
        if cached_layout:
            return json.loads(cached_layout)

        package = await self.get_package(db, package_id, include_inactive=True)
        occupied, _, _ = await self.get_occupied_seats(db, package.id, package.total_seats)
        # seats held by a booking that is being written show as occupied too
        locked = await seat_lock_manager.locked_seats(redis, package.id)
        seat_map = SeatMap(package.total_seats, occupied=set(occupied) | set(locked), readonly=True)

        layout = {
            "package_id": package.id,
            "total_seats": package.total_seats,
            "rows": seat_map.rows,
            "available_count": seat_map.available_count,
            "occupancy_percent": seat_map.occupancy_percent,
            "locked_seats": locked,
            "layout": seat_map.row_layout(),
        }
        await redis.set(seat_layout_cache_key(package_id), json.dumps(layout),
                        ex=settings.SEAT_LAYOUT_CACHE_SECONDS)
        return layout


crud_package = CRUDPackage()
