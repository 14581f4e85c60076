from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.security import require_admin, require_super_admin
from travel_agency.crud.contact import crud_contact
from travel_agency.db.session import get_db_session
from travel_agency.models.contact import ContactPriority, ContactStatus
from travel_agency.schemas.contact import ContactCreate, ContactListResponse, ContactResponse, ContactUpdate
from travel_agency.services.rate_limit import rate_limiter

router = APIRouter(
    prefix="/contacts",
    tags=["contacts"]
)


@router.post("", response_model=ContactResponse, status_code=201, dependencies=[Depends(rate_limiter("contacts"))])
async def create_contact(data: ContactCreate, db: AsyncSession = Depends(get_db_session)):
    return await crud_contact.create_contact(db, data)


@router.get("", response_model=ContactListResponse, dependencies=[Depends(require_admin)])
async def list_contacts(
        status: Optional[ContactStatus] = None,
        priority: Optional[ContactPriority] = None,
        search: Optional[str] = None,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=20, ge=1, le=100),
        db: AsyncSession = Depends(get_db_session)):
    return await crud_contact.list_contacts(
        db, status=status, priority=priority, search=search, page=page, limit=limit)


@router.get("/{contact_id}", response_model=ContactResponse, dependencies=[Depends(require_admin)])
async def get_contact(contact_id: int, db: AsyncSession = Depends(get_db_session)):
    return await crud_contact.get_contact(db, contact_id)


@router.patch("/{contact_id}", response_model=ContactResponse, dependencies=[Depends(require_admin)])
async def update_contact(contact_id: int, data: ContactUpdate, db: AsyncSession = Depends(get_db_session)):
    return await crud_contact.update_contact(db, contact_id, data)


@router.delete("/{contact_id}", dependencies=[Depends(require_super_admin)])
async def delete_contact(contact_id: int, db: AsyncSession = Depends(get_db_session)):
    await crud_contact.delete_contact(db, contact_id)
    return {"message": "Contact deleted"}
