from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class BusBase(BaseModel):
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1950, le=2100)
    plate: str = Field(..., min_length=1)
    seats: int = Field(..., ge=1)
    floors: int = Field(default=1, ge=1, le=2)
    photos: list[str] = []
    is_active: bool = True


class BusCreate(BusBase):
    pass


class BusUpdate(BaseModel):
    model: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1950, le=2100)
    plate: Optional[str] = None
    seats: Optional[int] = Field(default=None, ge=1)
    floors: Optional[int] = Field(default=None, ge=1, le=2)
    photos: Optional[list[str]] = None
    is_active: Optional[bool] = None


class BusResponse(BusBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BusSummary(BaseModel):
    id: int
    model: str
    plate: str
    seats: int
    floors: int

    class Config:
        from_attributes = True
