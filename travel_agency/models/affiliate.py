from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Integer, String, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from travel_agency.db.base import Base, BigIntPK
from travel_agency.models import TimestampMixin


class AffiliateStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class CommissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


class Affiliate(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    cpf: Mapped[Optional[str]] = mapped_column(String(14), nullable=True)
    pix_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    bank_account: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    # percent, e.g. 7.0 means 7%
    commission_rate: Mapped[float] = mapped_column(Float, nullable=False, default=7.0)
    status: Mapped[AffiliateStatus] = mapped_column(
        SAEnum(AffiliateStatus, name="affiliate_status_enum"), nullable=False, default=AffiliateStatus.PENDING)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # running totals in cents, only moved when a commission is paid
    total_sales: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    referrals: Mapped[list["AffiliateReferral"]] = relationship(
        back_populates="affiliate", cascade="all, delete-orphan", passive_deletes=True,
        order_by="AffiliateReferral.created_at.desc()")


class AffiliateReferral(Base, TimestampMixin):
    __tablename__ = "affiliate_referral"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    affiliate_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("affiliate.id", ondelete="CASCADE"), index=True, nullable=False)
    booking_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("booking.id", ondelete="SET NULL"), nullable=True, unique=True)
    package_title: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sale_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_status: Mapped[CommissionStatus] = mapped_column(
        SAEnum(CommissionStatus, name="commission_status_enum"), nullable=False, default=CommissionStatus.PENDING)
    commission_paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    affiliate: Mapped["Affiliate"] = relationship(back_populates="referrals")
