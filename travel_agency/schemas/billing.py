from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class SubscriptionResponse(BaseModel):
    plan_name: str
    plan_level: int
    status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    number: str
    amount_due: int
    amount_paid: int
    currency: str
    status: str
    hosted_invoice_url: Optional[str] = None
    pdf_url: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PortalResponse(BaseModel):
    url: str
