"""
promofye/models/subscription.py

UserSubscription model linking a user to a plan.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict

from promofye.models.plan import SubscriptionPlan

SubscriptionStatus = Literal["active", "cancelled", "expired"]


class UserSubscription(BaseModel):
    """
    A user's subscription row.

    Constraint: at most one subscription per user is active at a time.
    `plan` is embedded when loaded with its plan; `user_email` only in
    admin listings.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    plan_id: str
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    created_at: datetime
    updated_at: datetime
    plan: Optional[SubscriptionPlan] = None
    user_email: Optional[str] = None
