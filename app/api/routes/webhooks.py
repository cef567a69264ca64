"""
Payment Provider Webhooks

POST /api/webhooks/payments - Order/subscription created notifications
"""
import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from app.api.dependencies import get_payment_webhook_handler
from app.errors import BadRequestError
from app.services.payment_webhook import PaymentWebhookHandler

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/payments")
async def payment_webhook(
    request: Request,
    x_signature: Optional[str] = Header(None),
    handler: PaymentWebhookHandler = Depends(get_payment_webhook_handler),
):
    """
    Handle a signed payment notification.

    The signature covers the raw body, so it is read before JSON decoding.
    """
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise BadRequestError("Webhook body must be valid JSON")
    if not isinstance(payload, dict):
        raise BadRequestError("Webhook body must be a JSON object")

    return await handler.handle(raw_body, x_signature, payload)
