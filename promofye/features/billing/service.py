"""
Billing service orchestrator.

Coordinates:
- Checkout session creation for paid plans
- Webhook processing into subscription changes

All Stripe-specific code is in stripe_provider.py.
"""
from typing import Dict, Optional

from sqlalchemy import select

from promofye.core.config import settings
from promofye.core.database import get_db_session, user_subscriptions
from promofye.core.errors import BillingDisabledError, NotFoundError, ValidationError
from promofye.core.logging import log_event
from promofye.features.billing.provider import BillingProvider, BillingWebhookResult
from promofye.features.billing.stripe_provider import StripeProvider
from promofye.features.plans.service import assign_plan, cancel_subscription, get_plan
from promofye.models.user import UserProfile


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(settings.STRIPE_SECRET_KEY)


def get_provider() -> BillingProvider:
    """
    Raises:
        BillingDisabledError: Stripe is not configured
    """
    if not billing_enabled():
        raise BillingDisabledError("Billing is not configured. Contact support to upgrade your plan.")
    return StripeProvider()


def _known_customer_id(user_id: str) -> Optional[str]:
    with get_db_session() as session:
        row = session.execute(
            select(user_subscriptions.c.stripe_customer_id)
            .where(user_subscriptions.c.user_id == user_id)
            .where(user_subscriptions.c.stripe_customer_id.isnot(None))
            .order_by(user_subscriptions.c.created_at.desc())
        ).first()
    return row.stripe_customer_id if row else None


def _subscription_recorded(stripe_subscription_id: Optional[str]) -> bool:
    """True once a row carries this Stripe subscription (ids are unique per row)."""
    if not stripe_subscription_id:
        return False
    with get_db_session() as session:
        row = session.execute(
            select(user_subscriptions.c.id)
            .where(user_subscriptions.c.stripe_subscription_id == stripe_subscription_id)
        ).first()
    return row is not None


def create_checkout(
    user: UserProfile,
    plan_id: str,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    provider: Optional[BillingProvider] = None,
) -> str:
    """
    Start a subscription checkout for a paid plan.

    Returns:
        Checkout URL

    Raises:
        NotFoundError: Unknown or inactive plan
        ValidationError: Plan has no Stripe price
        BillingDisabledError: Stripe is not configured
        BillingProviderError: Stripe call failed
    """
    plan = get_plan(plan_id)
    if not plan or not plan.is_active:
        raise NotFoundError(f"Plan {plan_id} not found")
    if not plan.stripe_price_id:
        raise ValidationError(f"Plan {plan_id} is not available for purchase")

    provider = provider or get_provider()
    customer_id = _known_customer_id(user.id) or provider.ensure_customer(user.id, user.email, user.full_name)

    base_url = settings.APP_BASE_URL.rstrip("/")
    url = provider.create_checkout_session(
        customer_id=customer_id,
        price_id=plan.stripe_price_id,
        success_url=success_url or f"{base_url}/subscription?checkout=success",
        cancel_url=cancel_url or f"{base_url}/subscription?checkout=cancelled",
        metadata={"user_id": user.id, "plan_id": plan.id},
    )

    log_event(
        "info",
        "billing.checkout_created",
        user_id=user.id,
        event_type="billing",
        extra={"plan_id": plan.id},
    )
    return url


def handle_webhook(headers: Dict[str, str], body: bytes, provider: Optional[BillingProvider] = None) -> BillingWebhookResult:
    """
    Verify a webhook and apply it to subscriptions.

    checkout.session.completed assigns the purchased plan;
    customer.subscription.deleted cancels the matching subscription.
    Other event types are acknowledged and ignored.
    """
    provider = provider or get_provider()
    result = provider.handle_webhook(headers, body)

    if result.event_type == "checkout.session.completed":
        if _subscription_recorded(result.subscription_id):
            # Stripe redelivers events; the first delivery already assigned the plan
            log_event(
                "info",
                "billing.webhook_duplicate",
                user_id=result.user_id,
                event_type="billing",
                extra={"event_id": result.event_id},
            )
        elif result.user_id and result.plan_id:
            assign_plan(
                result.user_id,
                result.plan_id,
                stripe_subscription_id=result.subscription_id,
                stripe_customer_id=result.customer_id,
            )
        else:
            log_event(
                "warning",
                "billing.webhook_missing_metadata",
                event_type="billing",
                extra={"event_id": result.event_id},
            )
    elif result.event_type == "customer.subscription.deleted" and result.subscription_id:
        cancel_subscription(stripe_subscription_id=result.subscription_id)

    log_event(
        "info",
        "billing.webhook_processed",
        user_id=result.user_id,
        event_type="billing",
        extra={"event_id": result.event_id, "stripe_event": result.event_type},
    )
    return result
