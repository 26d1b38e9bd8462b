"""
promofye/features/plans/service.py

Subscription plan service.

Handles:
- Plan seeding (free, pro, business)
- Active plan listing for the subscription page
- User subscription assignment and cancellation
- Admin subscription listing
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select, insert, update

from promofye.core.clock import add_one_month, ensure_utc, normalize_now
from promofye.core.database import (
    get_db_session,
    subscription_plans,
    user_subscriptions,
    user_profiles,
)
from promofye.core.errors import NotFoundError, ValidationError
from promofye.core.logging import log_event
from promofye.models.plan import SubscriptionPlan
from promofye.models.subscription import UserSubscription


# Default plan configurations (prices in cents)
DEFAULT_PLANS = {
    "free": {
        "name": "Free",
        "monthly_price": 0,
        "image_generations_limit": 10,
        "is_default": True,
        "features": [
            "10 image generations per month",
            "Thumbnail editor",
            "Product photo shoots",
            "Image reimaginer",
        ],
    },
    "pro": {
        "name": "Pro",
        "monthly_price": 1900,
        "image_generations_limit": 100,
        "is_default": False,
        "features": [
            "100 image generations per month",
            "Style examples",
            "All thumbnail presets",
            "Priority support",
        ],
    },
    "business": {
        "name": "Business",
        "monthly_price": 4900,
        "image_generations_limit": 500,
        "is_default": False,
        "features": [
            "500 image generations per month",
            "Style examples",
            "All thumbnail presets",
            "Dedicated support",
        ],
    },
}


def _row_to_plan(row) -> SubscriptionPlan:
    return SubscriptionPlan(
        id=row.id,
        name=row.name,
        stripe_price_id=row.stripe_price_id,
        monthly_price=row.monthly_price,
        image_generations_limit=row.image_generations_limit,
        features=list(row.features or []),
        is_active=bool(row.is_active),
        is_default=bool(row.is_default),
        created_at=ensure_utc(row.created_at),
    )


def seed_plans(price_ids: Optional[Dict[str, str]] = None) -> None:
    """
    Seed default plans into database (idempotent).

    Args:
        price_ids: Optional Stripe price IDs keyed by plan id
    """
    price_ids = price_ids or {}
    now = normalize_now(None)

    with get_db_session() as session:
        for plan_id, config in DEFAULT_PLANS.items():
            existing = session.execute(
                select(subscription_plans.c.id).where(subscription_plans.c.id == plan_id)
            ).first()

            if not existing:
                session.execute(
                    insert(subscription_plans).values(
                        id=plan_id,
                        name=config["name"],
                        stripe_price_id=price_ids.get(plan_id),
                        monthly_price=config["monthly_price"],
                        image_generations_limit=config["image_generations_limit"],
                        features=config["features"],
                        is_active=True,
                        is_default=config["is_default"],
                        created_at=now,
                    )
                )
            elif price_ids.get(plan_id):
                session.execute(
                    update(subscription_plans)
                    .where(subscription_plans.c.id == plan_id)
                    .values(stripe_price_id=price_ids[plan_id])
                )


def list_active_plans() -> List[SubscriptionPlan]:
    """Active plans, cheapest first."""
    with get_db_session() as session:
        rows = session.execute(
            select(subscription_plans)
            .where(subscription_plans.c.is_active.is_(True))
            .order_by(subscription_plans.c.monthly_price.asc())
        ).all()
        return [_row_to_plan(row) for row in rows]


def get_plan(plan_id: str) -> Optional[SubscriptionPlan]:
    """Get plan by ID."""
    with get_db_session() as session:
        row = session.execute(
            select(subscription_plans).where(subscription_plans.c.id == plan_id)
        ).first()
        return _row_to_plan(row) if row else None


def get_default_plan() -> Optional[SubscriptionPlan]:
    """Get the default plan (typically 'free')."""
    with get_db_session() as session:
        row = session.execute(
            select(subscription_plans)
            .where(subscription_plans.c.is_default.is_(True))
            .where(subscription_plans.c.is_active.is_(True))
        ).first()
        return _row_to_plan(row) if row else None


def _subscription_with_plan_query():
    return select(user_subscriptions, subscription_plans).join(
        subscription_plans,
        subscription_plans.c.id == user_subscriptions.c.plan_id,
        isouter=True,
    )


def _split_joined_row(row):
    """Split a subscription+plan joined row into (subscription, plan)."""
    mapping = row._mapping
    plan = None
    if mapping[subscription_plans.c.id] is not None:
        plan = SubscriptionPlan(
            id=mapping[subscription_plans.c.id],
            name=mapping[subscription_plans.c.name],
            stripe_price_id=mapping[subscription_plans.c.stripe_price_id],
            monthly_price=mapping[subscription_plans.c.monthly_price],
            image_generations_limit=mapping[subscription_plans.c.image_generations_limit],
            features=list(mapping[subscription_plans.c.features] or []),
            is_active=bool(mapping[subscription_plans.c.is_active]),
            is_default=bool(mapping[subscription_plans.c.is_default]),
            created_at=ensure_utc(mapping[subscription_plans.c.created_at]),
        )
    subscription = UserSubscription(
        id=mapping[user_subscriptions.c.id],
        user_id=mapping[user_subscriptions.c.user_id],
        plan_id=mapping[user_subscriptions.c.plan_id],
        stripe_subscription_id=mapping[user_subscriptions.c.stripe_subscription_id],
        stripe_customer_id=mapping[user_subscriptions.c.stripe_customer_id],
        status=mapping[user_subscriptions.c.status],
        current_period_start=ensure_utc(mapping[user_subscriptions.c.current_period_start]),
        current_period_end=ensure_utc(mapping[user_subscriptions.c.current_period_end]),
        created_at=ensure_utc(mapping[user_subscriptions.c.created_at]),
        updated_at=ensure_utc(mapping[user_subscriptions.c.updated_at]),
        plan=plan,
    )
    return subscription


def get_active_subscription(user_id: str) -> Optional[UserSubscription]:
    """The user's active subscription with its plan embedded, or None."""
    with get_db_session() as session:
        row = session.execute(
            _subscription_with_plan_query()
            .where(user_subscriptions.c.user_id == user_id)
            .where(user_subscriptions.c.status == "active")
            .order_by(user_subscriptions.c.created_at.desc())
        ).first()
        return _split_joined_row(row) if row else None


def get_subscription(user_id: str) -> Optional[UserSubscription]:
    """Latest subscription in any status (active preferred)."""
    active = get_active_subscription(user_id)
    if active:
        return active
    with get_db_session() as session:
        row = session.execute(
            _subscription_with_plan_query()
            .where(user_subscriptions.c.user_id == user_id)
            .order_by(user_subscriptions.c.created_at.desc())
        ).first()
        return _split_joined_row(row) if row else None


def assign_plan(
    user_id: str,
    plan_id: str,
    *,
    stripe_subscription_id: Optional[str] = None,
    stripe_customer_id: Optional[str] = None,
    now: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
) -> UserSubscription:
    """
    Put a user on a plan, replacing any active subscription.

    Args:
        user_id: User to assign plan to
        plan_id: Plan to assign
        stripe_subscription_id: Provider subscription, when paid
        stripe_customer_id: Provider customer, when paid
        now: Period start (defaults to now)
        period_end: Period end (defaults to one month after start)

    Returns:
        The new active UserSubscription

    Raises:
        NotFoundError: If plan_id doesn't exist
        ValidationError: If the plan is no longer offered
    """
    plan = get_plan(plan_id)
    if not plan:
        raise NotFoundError(f"Plan {plan_id} not found")
    if not plan.is_active:
        raise ValidationError(f"Plan {plan_id} is not available")

    start = normalize_now(now)
    end = ensure_utc(period_end) if period_end else add_one_month(start)
    subscription_id = str(uuid4())

    with get_db_session() as session:
        session.execute(
            update(user_subscriptions)
            .where(user_subscriptions.c.user_id == user_id)
            .where(user_subscriptions.c.status == "active")
            .values(status="cancelled", updated_at=start)
        )
        session.execute(
            insert(user_subscriptions).values(
                id=subscription_id,
                user_id=user_id,
                plan_id=plan_id,
                stripe_subscription_id=stripe_subscription_id,
                stripe_customer_id=stripe_customer_id,
                status="active",
                current_period_start=start,
                current_period_end=end,
                created_at=start,
                updated_at=start,
            )
        )

    log_event(
        "info",
        "subscription.assigned",
        user_id=user_id,
        event_type="subscription",
        extra={"plan_id": plan_id},
    )
    subscription = get_active_subscription(user_id)
    if subscription is None:
        raise NotFoundError(f"Subscription for user {user_id} not found")
    return subscription


def cancel_subscription(
    user_id: Optional[str] = None,
    *,
    stripe_subscription_id: Optional[str] = None,
    status: str = "cancelled",
) -> int:
    """Mark active subscriptions as cancelled (or expired). Returns rows changed."""
    if not user_id and not stripe_subscription_id:
        raise ValidationError("user_id or stripe_subscription_id is required")

    query = update(user_subscriptions).where(user_subscriptions.c.status == "active")
    if user_id:
        query = query.where(user_subscriptions.c.user_id == user_id)
    if stripe_subscription_id:
        query = query.where(user_subscriptions.c.stripe_subscription_id == stripe_subscription_id)

    with get_db_session() as session:
        result = session.execute(query.values(status=status, updated_at=normalize_now(None)))
        changed = result.rowcount

    log_event(
        "info",
        "subscription.cancelled",
        user_id=user_id,
        event_type="subscription",
        extra={"stripe_subscription_id": stripe_subscription_id, "status": status, "changed": changed},
    )
    return changed


def list_subscriptions_with_users() -> List[UserSubscription]:
    """Admin view: every subscription with its plan and owner email, newest first."""
    with get_db_session() as session:
        rows = session.execute(
            _subscription_with_plan_query()
            .add_columns(user_profiles.c.email)
            .join(user_profiles, user_profiles.c.id == user_subscriptions.c.user_id, isouter=True)
            .order_by(user_subscriptions.c.created_at.desc())
        ).all()
        results = []
        for row in rows:
            subscription = _split_joined_row(row)
            results.append(subscription.model_copy(update={"user_email": row._mapping[user_profiles.c.email]}))
        return results
