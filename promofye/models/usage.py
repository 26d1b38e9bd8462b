"""
promofye/models/usage.py

Usage log and quota models.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional, get_args
from pydantic import BaseModel, ConfigDict

ActionType = Literal["thumbnail", "product_shoot", "reimagine", "scene"]
ACTION_TYPES = get_args(ActionType)


class UsageLog(BaseModel):
    """
    One generation charged against the monthly allowance.

    Metadata can include:
    - prompt: the prompt used (first 200 characters)
    - preset: thumbnail size preset
    - has_base_image: reimagine with an uploaded image
    """
    model_config = ConfigDict(frozen=True)

    id: int
    user_id: str
    action_type: str
    credits_used: int = 1
    metadata: Dict[str, Any] = {}
    created_at: datetime


class UsageCheck(BaseModel):
    """Result of a quota check: {allowed, remaining, limit}."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int
    limit: int

    @classmethod
    def denied(cls) -> "UsageCheck":
        return cls(allowed=False, remaining=0, limit=0)


class UsageSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    used: int
    limit: int
    remaining: int
    percent: float
    is_low: bool
    is_exceeded: bool
    unlimited: bool = False
