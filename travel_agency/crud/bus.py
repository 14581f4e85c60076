import logging
from typing import Optional
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.exceptions import ConflictError, NotFoundError
from travel_agency.models.bus import Bus
from travel_agency.models.package import Package
from travel_agency.schemas.bus import BusCreate, BusUpdate

logger = logging.getLogger(__name__)


class CRUDBus:
    async def list_buses(self, db: AsyncSession, active: Optional[bool] = None):
        stmt = select(Bus)
        if active is not None:
            stmt = stmt.where(Bus.is_active.is_(active))
        result = await db.execute(stmt.order_by(Bus.created_at.desc(), Bus.id.desc()))
        return result.scalars().all()

    async def get_bus(self, db: AsyncSession, bus_id: int) -> Bus:
        bus = await db.get(Bus, bus_id)
        if bus is None:
            raise NotFoundError("Bus")
        return bus

    async def _ensure_plate_free(self, db: AsyncSession, plate: str, exclude_id: Optional[int] = None):
        stmt = select(Bus.id).where(Bus.plate == plate)
        if exclude_id is not None:
            stmt = stmt.where(Bus.id != exclude_id)
        if (await db.execute(stmt)).first() is not None:
            raise ConflictError(f"A bus with plate {plate} already exists")

    async def create_bus(self, db: AsyncSession, data: BusCreate) -> Bus:
        plate = data.plate.strip().upper()
        await self._ensure_plate_free(db, plate)
        bus = Bus(**data.model_dump(exclude={"plate"}), plate=plate)
        db.add(bus)
        await db.commit()
        await db.refresh(bus)
        logger.info("Registered bus %s (%s)", bus.id, bus.plate)
        return bus

    async def update_bus(self, db: AsyncSession, bus_id: int, data: BusUpdate) -> Bus:
        bus = await self.get_bus(db, bus_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("plate") is not None:
            changes["plate"] = changes["plate"].strip().upper()
            if changes["plate"] != bus.plate:
                await self._ensure_plate_free(db, changes["plate"], exclude_id=bus.id)
        for field, value in changes.items():
            if value is not None:
                setattr(bus, field, value)
        await db.commit()
        await db.refresh(bus)
        return bus

    async def delete_bus(self, db: AsyncSession, bus_id: int) -> dict:
        """Deactivates a bus still referenced by packages, deletes it otherwise."""
        bus = await self.get_bus(db, bus_id)
        package_count = await db.scalar(
            select(func.count(Package.id)).where(Package.bus_id == bus_id))
        if package_count:
            bus.is_active = False
            await db.commit()
            logger.info("Deactivated bus %s, referenced by %s packages", bus_id, package_count)
            return {"deleted": False, "deactivated": True,
                    "message": "Bus deactivated because packages reference it"}

        await db.delete(bus)
        await db.commit()
        logger.info("Deleted bus %s", bus_id)
        return {"deleted": True, "deactivated": False, "message": "Bus deleted"}


crud_bus = CRUDBus()
