from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.security import get_current_user
from travel_agency.crud.billing import crud_billing
from travel_agency.db.session import get_db_session
from travel_agency.models.user import User
from travel_agency.schemas.billing import InvoiceResponse, PortalResponse, SubscriptionResponse
from travel_agency.services.rate_limit import rate_limiter

router = APIRouter(tags=["billing"])


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(db: AsyncSession = Depends(get_db_session), user: User = Depends(get_current_user)):
    return await crud_billing.get_subscription(db, user)


@router.get("/invoices", response_model=list[InvoiceResponse])
async def list_invoices(db: AsyncSession = Depends(get_db_session), user: User = Depends(get_current_user)):
    return await crud_billing.list_invoices(db, user)


@router.post("/portal", response_model=PortalResponse, dependencies=[Depends(rate_limiter("portal"))])
async def create_portal_session(db: AsyncSession = Depends(get_db_session), user: User = Depends(get_current_user)):
    return {"url": await crud_billing.get_portal_url(db, user)}
