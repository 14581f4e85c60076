from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.config import settings
from travel_agency.core.exceptions import ValidationFailedError
from travel_agency.models.billing import Invoice, Subscription
from travel_agency.models.user import User

LIVE_SUBSCRIPTION_STATUSES = ("active", "trialing", "past_due")

# plan level -> display name, level 1 is the free plan
PLAN_NAMES = {1: "Gratuito", 2: "Básico", 3: "Pro"}

FREE_PLAN = {
    "plan_name": PLAN_NAMES[1],
    "plan_level": 1,
    "status": "free",
    "current_period_end": None,
    "cancel_at_period_end": False,
}


class CRUDBilling:
    async def get_subscription(self, db: AsyncSession, user: User):
        result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == user.id)
            .where(Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES))
            .order_by(Subscription.created_at.desc(), Subscription.id.desc())
            .limit(1))
        subscription = result.scalar_one_or_none()
        if subscription is None:
            return FREE_PLAN
        return subscription

    async def list_invoices(self, db: AsyncSession, user: User):
        result = await db.execute(
            select(Invoice)
            .where(Invoice.user_id == user.id)
            .order_by(Invoice.created_at.desc(), Invoice.id.desc()))
        return result.scalars().all()

    async def get_portal_url(self, db: AsyncSession, user: User) -> str:
        customer_id = await db.scalar(
            select(Subscription.provider_customer_id)
            .where(Subscription.user_id == user.id)
            .where(Subscription.provider_customer_id.is_not(None))
            .order_by(Subscription.created_at.desc())
            .limit(1))
        if not customer_id:
            raise ValidationFailedError("No billing account found for this user")
        return f"{settings.BILLING_PORTAL_URL}?customer={customer_id}"


crud_billing = CRUDBilling()
