import hashlib
import hmac
import json
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from travel_agency.core.config import settings
from travel_agency.core.exceptions import AuthenticationError, ValidationFailedError
from travel_agency.crud.webhook import AUTH, PAYMENTS, crud_webhook
from travel_agency.db.session import get_db_session
from travel_agency.schemas.webhook import WebhookAck

router = APIRouter(
    prefix="/webhooks",
    tags=["webhooks"]
)


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """HMAC-SHA256 of the raw body, sent as `sha256=<hex digest>`."""
    if not signature:
        return False
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f"sha256={expected}", signature)


def parse_event(payload: bytes, signature: Optional[str], secret: str) -> dict:
    if not verify_signature(payload, signature, secret):
        raise AuthenticationError("Invalid webhook signature")
    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        raise ValidationFailedError("Invalid JSON")
    if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
        raise ValidationFailedError("Missing event id or type")
    return event


@router.post("/payments", response_model=WebhookAck, summary="Subscription and invoice events of the payment provider")
async def payment_webhook(
        request: Request,
        x_webhook_signature: Optional[str] = Header(default=None, alias="X-Webhook-Signature"),
        db: AsyncSession = Depends(get_db_session)):
    event = parse_event(await request.body(), x_webhook_signature, settings.PAYMENT_WEBHOOK_SECRET)
    return await crud_webhook.apply_event(db, PAYMENTS, event)


@router.post("/auth", response_model=WebhookAck, summary="Account events of the auth provider")
async def auth_webhook(
        request: Request,
        x_webhook_signature: Optional[str] = Header(default=None, alias="X-Webhook-Signature"),
        db: AsyncSession = Depends(get_db_session)):
    event = parse_event(await request.body(), x_webhook_signature, settings.AUTH_WEBHOOK_SECRET)
    return await crud_webhook.apply_event(db, AUTH, event)
