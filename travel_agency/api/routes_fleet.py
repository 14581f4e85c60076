from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.security import require_admin
from travel_agency.crud.bus import crud_bus
from travel_agency.db.session import get_db_session
from travel_agency.schemas.bus import BusCreate, BusResponse, BusUpdate

router = APIRouter(
    prefix="/fleet",
    tags=["fleet"]
)


@router.get("", response_model=list[BusResponse])
async def list_buses(active: Optional[bool] = None, db: AsyncSession = Depends(get_db_session)):
    return await crud_bus.list_buses(db, active=active)


@router.get("/{bus_id}", response_model=BusResponse)
async def get_bus(bus_id: int, db: AsyncSession = Depends(get_db_session)):
    return await crud_bus.get_bus(db, bus_id)


@router.post("", response_model=BusResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_bus(data: BusCreate, db: AsyncSession = Depends(get_db_session)):
    return await crud_bus.create_bus(db, data)


@router.put("/{bus_id}", response_model=BusResponse, dependencies=[Depends(require_admin)])
async def update_bus(bus_id: int, data: BusUpdate, db: AsyncSession = Depends(get_db_session)):
    return await crud_bus.update_bus(db, bus_id, data)


@router.delete("/{bus_id}", dependencies=[Depends(require_admin)])
async def delete_bus(bus_id: int, db: AsyncSession = Depends(get_db_session)):
    return await crud_bus.delete_bus(db, bus_id)
