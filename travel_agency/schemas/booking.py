from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from travel_agency.models.booking import BookingStatus, PaymentStatus


class PassengerDetails(BaseModel):
    adults: int = Field(default=1, ge=1)
    children_11_13: int = Field(default=0, ge=0)
    children_6_10: int = Field(default=0, ge=0)
    children_free: int = Field(default=0, ge=0)


class BookingBase(BaseModel):
    package_id: int
    customer_name: str
    customer_email: EmailStr
    customer_phone: str
    customer_cpf: Optional[str] = None
    customer_notes: Optional[str] = None
    num_passengers: int = Field(..., ge=1)
    passenger_details: Optional[PassengerDetails] = None
    selected_seats: Optional[list[int]] = None


class BookingCreate(BookingBase):
    affiliate_code: Optional[str] = None


class BookingUpdate(BaseModel):
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None


class BookingResponse(BookingBase):
    id: int
    user_id: Optional[int] = None
    total_amount: int
    status: BookingStatus
    payment_status: PaymentStatus
    paid_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    notes: Optional[str] = None
    affiliate_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookingStats(BaseModel):
    total: int
    pending: int
    confirmed: int
    paid: int
    canceled: int
    revenue: int


class BookingListResponse(BaseModel):
    data: list[BookingResponse]
    stats: BookingStats
