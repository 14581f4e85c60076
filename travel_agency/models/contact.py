from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import DateTime, String, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from travel_agency.db.base import Base, BigIntPK
from travel_agency.models import TimestampMixin


class ContactStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    ARCHIVED = "archived"


class ContactPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Contact(Base, TimestampMixin):
    """
    A message sent through the public contact form, triaged by the admins.
    """
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ContactStatus] = mapped_column(
        SAEnum(ContactStatus, name="contact_status_enum"), nullable=False, default=ContactStatus.PENDING)
    priority: Mapped[ContactPriority] = mapped_column(
        SAEnum(ContactPriority, name="contact_priority_enum"), nullable=False, default=ContactPriority.NORMAL)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
