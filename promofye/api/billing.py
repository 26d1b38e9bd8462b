"""
Billing API routes.

- POST /api/billing/webhook: Handle Stripe webhooks
"""
from fastapi import APIRouter, Request

from promofye.features.billing.service import handle_webhook

router = APIRouter()


@router.post("/webhook")
async def webhook(request: Request):
    """
    Verify and apply a Stripe event.

    Errors:
        400: Invalid signature or payload
        503: Billing disabled (STRIPE_SECRET_KEY not set)
    """
    body = await request.body()
    result = handle_webhook(dict(request.headers), body)
    return {"received": True, "event_type": result.event_type}
