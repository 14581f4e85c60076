from datetime import datetime, timezone
from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# list/dict columns: JSONB on PostgreSQL, plain JSON elsewhere
JSONList = JSON().with_variant(JSONB, "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes, they are stored as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


from .user import User, UserRole
from .bus import Bus
from .package import Package, PackageStatus
from .booking import Booking, BookingStatus, PaymentStatus
from .affiliate import Affiliate, AffiliateStatus, AffiliateReferral, CommissionStatus
from .contact import Contact, ContactStatus, ContactPriority
from .billing import Subscription, Invoice
from .webhook_event import WebhookEvent

__all__ = [
    "TimestampMixin", "User", "UserRole", "Bus", "Package", "PackageStatus",
    "Booking", "BookingStatus", "PaymentStatus", "Affiliate", "AffiliateStatus",
    "AffiliateReferral", "CommissionStatus", "Contact", "ContactStatus",
    "ContactPriority", "Subscription", "Invoice", "WebhookEvent",
]
