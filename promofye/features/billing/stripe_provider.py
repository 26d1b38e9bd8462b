"""
Stripe billing provider.

Implements BillingProvider using the Stripe API. Checkout sessions carry
user_id and plan_id in their metadata so the webhook can assign the plan.
"""
import json
from typing import Dict, Any, Optional

import stripe

from promofye.core.config import settings
from promofye.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
)


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to settings.STRIPE_SECRET_KEY)
            webhook_secret: Stripe webhook secret (defaults to settings.STRIPE_WEBHOOK_SECRET)
        """
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def ensure_customer(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
        """Find the Stripe customer tagged with user_id, creating one if needed."""
        try:
            existing = stripe.Customer.search(query=f"metadata['user_id']:'{user_id}'", limit=1)
            if existing.data:
                return existing.data[0].id

            customer_data: Dict[str, Any] = {"metadata": {"user_id": user_id}}
            if email:
                customer_data["email"] = email
            if name:
                customer_data["name"] = name

            customer = stripe.Customer.create(**customer_data)
            return customer.id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer creation failed: {e}")

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """Create Stripe checkout session."""
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
                subscription_data={"metadata": metadata or {}},
            )
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(body, sig_header, self.webhook_secret)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        return parse_event(json.loads(body))


def parse_event(event: Dict[str, Any]) -> BillingWebhookResult:
    """Normalize a verified Stripe event payload."""
    event_type = event.get("type", "")
    data = event.get("data", {}).get("object", {}) or {}
    metadata = data.get("metadata") or {}

    result = BillingWebhookResult(
        event_id=event.get("id", ""),
        event_type=event_type,
        user_id=metadata.get("user_id"),
        plan_id=metadata.get("plan_id"),
        customer_id=data.get("customer"),
        metadata=metadata,
    )

    if event_type == "checkout.session.completed":
        result.subscription_id = data.get("subscription")
        result.status = "active"
    elif event_type.startswith("customer.subscription"):
        result.subscription_id = data.get("id")
        result.status = data.get("status")

    return result
