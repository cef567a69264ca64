"""
Payment Webhook Handler

Marks a subscription as paid when the payment provider reports an order or
subscription creation. Payloads are signed with HMAC-SHA256 over the raw body.
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

from app import config
from app.errors import NotFoundError, UnauthorizedError
from app.schemas import SubscriptionStatus
from app.services.item_store import SUBSCRIPTIONS, ItemStore

logger = logging.getLogger(__name__)

HANDLED_EVENTS = ("order_created", "subscription_created")


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Check the provider's X-Signature header.

    Returns False when verification was skipped because no secret is
    configured; raises UnauthorizedError on a missing or wrong signature.
    """
    if not secret:
        logger.warning("Payment webhook signature verification skipped - PAYMENT_WEBHOOK_SECRET not configured")
        return False

    digest = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    if not signature or not hmac.compare_digest(digest, signature):
        logger.error("Payment webhook rejected: invalid signature")
        raise UnauthorizedError("Invalid signature")
    return True


class PaymentWebhookHandler:
    def __init__(self, store: ItemStore, secret: Optional[str] = None):
        self.store = store
        self.secret = secret if secret is not None else config.PAYMENT_WEBHOOK_SECRET

    async def handle(self, raw_body: bytes, signature: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
        verify_signature(raw_body, signature, self.secret)

        meta = payload.get("meta") or {}
        event_name = meta.get("event_name")
        custom_data = meta.get("custom_data") or {}
        subscription_id = custom_data.get("subscription_id")
        payment_reference = (payload.get("data") or {}).get("id")

        logger.info(f"Payment webhook received: {event_name} (subscription {subscription_id})")

        if event_name not in HANDLED_EVENTS:
            return {"received": True, "processed": False, "reason": "Event type not handled"}

        if not subscription_id:
            logger.error("Payment webhook missing subscription_id in custom_data")
            return {"received": True, "processed": False, "reason": "Missing subscription_id"}

        updated = await self.store.update_item(
            SUBSCRIPTIONS,
            str(subscription_id),
            {
                "status": SubscriptionStatus.PAYMENT_RECEIVED.value,
                "payment_reference": str(payment_reference) if payment_reference is not None else None,
            },
        )
        if updated is None:
            raise NotFoundError("Subscription not found")

        logger.info(f"Subscription {subscription_id} marked payment_received")
        return {
            "received": True,
            "processed": True,
            "subscription_id": str(subscription_id),
            "status": SubscriptionStatus.PAYMENT_RECEIVED.value,
        }
