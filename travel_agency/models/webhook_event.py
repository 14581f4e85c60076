from typing import Optional
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from travel_agency.db.base import Base, BigIntPK
from travel_agency.models import TimestampMixin


class WebhookEvent(Base, TimestampMixin):
    """
    Provider events already applied. A redelivered event_id is acknowledged
    without being applied twice.
    """
    __tablename__ = "webhook_event"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    event_id: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    # payments | auth
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
