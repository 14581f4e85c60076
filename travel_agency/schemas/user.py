from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from travel_agency.models.user import UserRole


class UserResponse(BaseModel):
    id: int
    external_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    role: UserRole
    is_admin: bool
    created_at: datetime

    class Config:
        from_attributes = True
