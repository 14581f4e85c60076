from datetime import date
from enum import Enum
from typing import Optional
from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, Integer, String, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from travel_agency.db.base import Base, BigIntPK
from travel_agency.models import JSONList, TimestampMixin


class PackageStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    SOLD_OUT = "sold_out"
    CANCELED = "canceled"


class Package(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    short_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    destination: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    departure_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # money in cents
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    original_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_child_6_10: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_child_11_13: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    departure_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    departure_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    return_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    total_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_participants: Mapped[int] = mapped_column(Integer, nullable=False, default=10)

    cover_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gallery_images: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    includes: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    not_includes: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    attractions: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    itinerary: Mapped[Optional[list]] = mapped_column(JSONList, nullable=True)

    status: Mapped[PackageStatus] = mapped_column(
        SAEnum(PackageStatus, name="package_status_enum"), nullable=False, default=PackageStatus.DRAFT)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    bookings_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    bus_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("bus.id", ondelete="SET NULL"), nullable=True, index=True)
    bus: Mapped[Optional["Bus"]] = relationship(back_populates="packages")
    bookings: Mapped[list["Booking"]] = relationship(back_populates="package")

    @property
    def has_seat_map(self) -> bool:
        return self.total_seats > 0
