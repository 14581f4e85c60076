import json
import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.crud.billing import PLAN_NAMES
from travel_agency.models.billing import Invoice, Subscription
from travel_agency.models.user import User, UserRole
from travel_agency.models.webhook_event import WebhookEvent

logger = logging.getLogger(__name__)

PAYMENTS = "payments"
AUTH = "auth"

DEFAULT_PAID_PLAN_LEVEL = 2


def _from_timestamp(value) -> Optional[datetime]:
    """Providers send unix seconds."""
    if isinstance(value, (int, float)) and value > 0:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


def _object_id(value) -> Optional[str]:
    # expanded objects arrive as dicts, collapsed ones as plain ids
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _plan_level(obj: dict, default: int) -> int:
    try:
        return int((obj.get("metadata") or {}).get("plan_level", default))
    except (TypeError, ValueError):
        return default


class CRUDWebhook:

    # 1. record the event id, a duplicate id means the event was already applied.
    # 2. apply the event to the local mirror tables.
    # 3. commit both together, a failing handler leaves the event unrecorded so a redelivery retries it.

    async def apply_event(self, db: AsyncSession, provider: str, event: dict) -> dict:
        event_id, event_type = event["id"], event["type"]
        data = event.get("data") or {}

        db.add(WebhookEvent(event_id=event_id, provider=provider, event_type=event_type,
                            payload=json.dumps(data)))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            logger.info("Webhook %s already processed, skipping", event_id)
            return {"status": "already_processed", "event_id": event_id}

        handlers = self._payment_handlers() if provider == PAYMENTS else self._auth_handlers()
        handler = handlers.get(event_type)
        try:
            if handler is not None:
                await handler(db, data.get("object") or data)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.error("Webhook %s (%s) failed", event_id, event_type, exc_info=True)
            raise

        if handler is None:
            logger.info("Unhandled %s event type %s", provider, event_type)
            return {"status": "ignored", "event_id": event_id}
        logger.info("Applied %s webhook %s (%s)", provider, event_id, event_type)
        return {"status": "processed", "event_id": event_id}

    def _payment_handlers(self) -> dict:
        return {
            "customer.subscription.created": self._upsert_subscription,
            "customer.subscription.updated": self._upsert_subscription,
            "customer.subscription.deleted": self._cancel_subscription,
            "invoice.paid": self._invoice_paid,
            "invoice.payment_failed": self._invoice_payment_failed,
            "invoice.payment_action_required": self._invoice_action_required,
        }

    def _auth_handlers(self) -> dict:
        return {
            "user.created": self._upsert_user,
            "user.updated": self._upsert_user,
            "user.deleted": self._delete_user,
        }

    async def _resolve_user_id(self, db: AsyncSession, obj: dict) -> Optional[int]:
        """The account named in the metadata, else the owner of an earlier subscription of the same customer."""
        external_id = (obj.get("metadata") or {}).get("external_id")
        if external_id:
            user_id = await db.scalar(select(User.id).where(User.external_id == external_id))
            if user_id is not None:
                return user_id
        customer_id = _object_id(obj.get("customer"))
        if customer_id:
            return await db.scalar(
                select(Subscription.user_id)
                .where(Subscription.provider_customer_id == customer_id)
                .order_by(Subscription.created_at.desc())
                .limit(1))
        return None

    async def _find_subscription(self, db: AsyncSession, subscription_id: Optional[str]):
        if not subscription_id:
            return None
        return await db.scalar(
            select(Subscription).where(Subscription.provider_subscription_id == subscription_id))

    async def _set_subscription_status(self, db: AsyncSession, subscription_id: Optional[str], status: str):
        if not subscription_id:
            logger.info("Invoice is not related to a subscription, skipping status change")
            return
        await db.execute(
            update(Subscription)
            .where(Subscription.provider_subscription_id == subscription_id)
            .values(status=status))

    async def _upsert_subscription(self, db: AsyncSession, obj: dict):
        subscription = await self._find_subscription(db, obj.get("id"))
        if subscription is None:
            if not obj.get("id"):
                logger.warning("Subscription event without an id, skipping")
                return
            user_id = await self._resolve_user_id(db, obj)
            if user_id is None:
                logger.warning("No user for subscription %s of customer %s", obj["id"], obj.get("customer"))
                return
            subscription = Subscription(user_id=user_id, provider_subscription_id=obj["id"])
            db.add(subscription)

        level = _plan_level(obj, subscription.plan_level or DEFAULT_PAID_PLAN_LEVEL)
        subscription.plan_level = level
        subscription.plan_name = (obj.get("metadata") or {}).get("plan_name") or PLAN_NAMES.get(level, f"Plano {level}")
        subscription.status = obj.get("status") or "active"
        subscription.provider_customer_id = _object_id(obj.get("customer")) or subscription.provider_customer_id
        subscription.current_period_end = _from_timestamp(obj.get("current_period_end")) or subscription.current_period_end
        subscription.cancel_at_period_end = bool(obj.get("cancel_at_period_end"))

    async def _cancel_subscription(self, db: AsyncSession, obj: dict):
        subscription = await self._find_subscription(db, obj.get("id"))
        if subscription is None:
            logger.warning("Canceled subscription %s is unknown, skipping", obj.get("id"))
            return
        subscription.status = "canceled"
        subscription.cancel_at_period_end = False

    async def _upsert_invoice(self, db: AsyncSession, obj: dict, status: str):
        number = obj.get("number") or obj.get("id")
        if not number:
            logger.warning("Invoice event without number or id, skipping")
            return
        invoice = await db.scalar(select(Invoice).where(Invoice.number == number))
        if invoice is None:
            user_id = await self._resolve_user_id(db, obj)
            if user_id is None:
                logger.warning("No user for invoice %s of customer %s", number, obj.get("customer"))
                return
            invoice = Invoice(user_id=user_id, number=number)
            db.add(invoice)

        invoice.amount_due = int(obj.get("amount_due") or 0)
        invoice.amount_paid = int(obj.get("amount_paid") or 0)
        invoice.currency = (obj.get("currency") or "brl").lower()
        invoice.status = status
        invoice.hosted_invoice_url = obj.get("hosted_invoice_url") or invoice.hosted_invoice_url
        invoice.pdf_url = obj.get("invoice_pdf") or invoice.pdf_url
        invoice.period_start = _from_timestamp(obj.get("period_start")) or invoice.period_start
        invoice.period_end = _from_timestamp(obj.get("period_end")) or invoice.period_end

    async def _invoice_paid(self, db: AsyncSession, obj: dict):
        await self._upsert_invoice(db, obj, "paid")
        await self._set_subscription_status(db, _object_id(obj.get("subscription")), "active")

    async def _invoice_payment_failed(self, db: AsyncSession, obj: dict):
        await self._upsert_invoice(db, obj, obj.get("status") or "open")
        await self._set_subscription_status(db, _object_id(obj.get("subscription")), "past_due")

    async def _invoice_action_required(self, db: AsyncSession, obj: dict):
        await self._set_subscription_status(db, _object_id(obj.get("subscription")), "incomplete")

    async def _upsert_user(self, db: AsyncSession, obj: dict):
        external_id = obj.get("id")
        addresses = obj.get("email_addresses") or []
        email = addresses[0].get("email_address") if addresses else None
        if not external_id:
            logger.warning("User event without an id, skipping")
            return

        user = await db.scalar(select(User).where(User.external_id == external_id))
        if user is None:
            if not email:
                logger.warning("User %s has no email address, skipping", external_id)
                return
            user = User(external_id=external_id, email=email, role=UserRole.USER)
            db.add(user)
        elif email:
            user.email = email
        # the role is managed here, never by the auth provider
        user.first_name = obj.get("first_name") or None
        user.last_name = obj.get("last_name") or None

    async def _delete_user(self, db: AsyncSession, obj: dict):
        user = await db.scalar(select(User).where(User.external_id == obj.get("id")))
        if user is None:
            return
        await db.delete(user)


crud_webhook = CRUDWebhook()
