from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class CustomerResponse(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    registered: bool
    user_id: Optional[int] = None
    bookings_count: int
    total_spent: int
    last_booking_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CustomerStats(BaseModel):
    total: int
    new_this_month: int
    with_bookings: int


class CustomerListResponse(BaseModel):
    data: list[CustomerResponse]
    stats: CustomerStats
