from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.security import require_admin
from travel_agency.crud.customer import crud_customer
from travel_agency.db.session import get_db_session
from travel_agency.schemas.customer import CustomerListResponse

router = APIRouter(
    prefix="/customers",
    tags=["customers"]
)


@router.get("", response_model=CustomerListResponse, dependencies=[Depends(require_admin)])
async def list_customers(search: Optional[str] = None, db: AsyncSession = Depends(get_db_session)):
    return await crud_customer.list_customers(db, search=search)
