from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from travel_agency.db.base import Base, BigIntPK
from travel_agency.models import JSONList, TimestampMixin


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELED = "canceled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Booking(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    package_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("package.id"), index=True, nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    customer_cpf: Mapped[Optional[str]] = mapped_column(String(14), nullable=True)
    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    num_passengers: Mapped[int] = mapped_column(Integer, nullable=False)
    passenger_details: Mapped[Optional[dict]] = mapped_column(JSONList, nullable=True)
    selected_seats: Mapped[Optional[list[int]]] = mapped_column(JSONList, nullable=True)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(BookingStatus, name="booking_status_enum"), nullable=False, default=BookingStatus.PENDING)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, name="payment_status_enum"), nullable=False, default=PaymentStatus.PENDING)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    affiliate_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    package: Mapped["Package"] = relationship(back_populates="bookings")
