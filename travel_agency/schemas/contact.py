from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from travel_agency.models.contact import ContactPriority, ContactStatus


class ContactBase(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: str = Field(..., min_length=10)


class ContactCreate(ContactBase):
    pass


class ContactUpdate(BaseModel):
    status: Optional[ContactStatus] = None
    priority: Optional[ContactPriority] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None


class ContactResponse(ContactBase):
    id: int
    status: ContactStatus
    priority: ContactPriority
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    read_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContactStats(BaseModel):
    total: int
    pending: int
    in_progress: int
    resolved: int
    archived: int


class ContactPagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ContactListResponse(BaseModel):
    data: list[ContactResponse]
    pagination: ContactPagination
    stats: ContactStats
