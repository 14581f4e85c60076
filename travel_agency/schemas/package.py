from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from travel_agency.models.package import PackageStatus
from travel_agency.schemas.bus import BusSummary


class PackageBase(BaseModel):
    title: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    price: int = Field(..., ge=0, description="price per adult in cents")
    description: Optional[str] = None
    short_description: Optional[str] = None
    departure_location: Optional[str] = None
    original_price: Optional[int] = Field(default=None, ge=0)
    price_child_6_10: Optional[int] = Field(default=None, ge=0)
    price_child_11_13: Optional[int] = Field(default=None, ge=0)
    duration_days: int = Field(default=1, ge=1)
    departure_date: Optional[date] = None
    departure_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    total_seats: int = Field(default=0, ge=0)
    min_participants: int = Field(default=10, ge=1)
    cover_image: Optional[str] = None
    gallery_images: list[str] = []
    includes: list[str] = []
    not_includes: list[str] = []
    attractions: list[str] = []
    itinerary: Optional[list[Any]] = None
    status: PackageStatus = PackageStatus.DRAFT
    is_featured: bool = False
    bus_id: Optional[int] = None


class PackageCreate(PackageBase):
    # defaults to total_seats
    available_seats: Optional[int] = Field(default=None, ge=0)


class PackageUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    destination: Optional[str] = Field(default=None, min_length=1)
    price: Optional[int] = Field(default=None, ge=0)
    description: Optional[str] = None
    short_description: Optional[str] = None
    departure_location: Optional[str] = None
    original_price: Optional[int] = Field(default=None, ge=0)
    price_child_6_10: Optional[int] = Field(default=None, ge=0)
    price_child_11_13: Optional[int] = Field(default=None, ge=0)
    duration_days: Optional[int] = Field(default=None, ge=1)
    departure_date: Optional[date] = None
    departure_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    return_date: Optional[date] = None
    return_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    total_seats: Optional[int] = Field(default=None, ge=0)
    available_seats: Optional[int] = Field(default=None, ge=0)
    min_participants: Optional[int] = Field(default=None, ge=1)
    cover_image: Optional[str] = None
    gallery_images: Optional[list[str]] = None
    includes: Optional[list[str]] = None
    not_includes: Optional[list[str]] = None
    attractions: Optional[list[str]] = None
    itinerary: Optional[list[Any]] = None
    status: Optional[PackageStatus] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    bus_id: Optional[int] = None


class PackageResponse(PackageBase):
    id: int
    slug: str
    available_seats: int
    bookings_count: int
    is_active: bool
    bus: Optional[BusSummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PackageSeatsResponse(BaseModel):
    package_id: int
    package_title: str
    total_seats: int
    occupied_seats: list[int]
    available_seats: int
    total_bookings: int
    total_participants: int
    bus: Optional[BusSummary] = None
