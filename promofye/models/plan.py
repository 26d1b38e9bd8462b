"""
promofye/models/plan.py

SubscriptionPlan model.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class SubscriptionPlan(BaseModel):
    """
    A purchasable tier with a monthly generation allowance.

    monthly_price is stored in cents; image_generations_limit counts
    credits per calendar month.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    stripe_price_id: Optional[str] = None
    monthly_price: int = 0
    image_generations_limit: int
    features: List[str] = []
    is_active: bool = True
    is_default: bool = False
    created_at: datetime
