"""
Subscription page routes.

- GET  /api/subscription/plans
- GET  /api/subscription
- POST /api/subscription/checkout
- GET  /api/usage (usage badge)
- GET  /api/usage/logs
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promofye.core.auth import get_current_user
from promofye.features.billing.service import create_checkout
from promofye.features.plans.service import get_subscription, list_active_plans
from promofye.features.usage.service import get_usage_summary, list_usage_logs
from promofye.models.user import UserProfile

router = APIRouter()
usage_router = APIRouter()


class CheckoutRequest(BaseModel):
    plan_id: str
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


@router.get("/plans")
def plans():
    return {"plans": [plan.model_dump(mode="json") for plan in list_active_plans()]}


@router.get("")
def current_subscription(user: UserProfile = Depends(get_current_user)):
    subscription = get_subscription(user.id)
    return {
        "subscription": subscription.model_dump(mode="json") if subscription else None,
        "usage": get_usage_summary(user).model_dump(mode="json"),
    }


@router.post("/checkout")
def checkout(request: CheckoutRequest, user: UserProfile = Depends(get_current_user)):
    url = create_checkout(user, request.plan_id, request.success_url, request.cancel_url)
    return {"url": url}


@usage_router.get("/usage")
def usage(user: UserProfile = Depends(get_current_user)):
    return get_usage_summary(user).model_dump(mode="json")


@usage_router.get("/usage/logs")
def usage_logs(user: UserProfile = Depends(get_current_user)):
    """Generations charged this month, newest first."""
    return {"logs": [log.model_dump(mode="json") for log in list_usage_logs(user.id)]}
