"""
promofye/features/usage/service.py

Monthly generation quota.

Handles:
- Usage logging (one row per successful generation)
- Monthly usage sums against the active plan's limit
- The generation gate used by every image operation
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, insert, func
from sqlalchemy.exc import SQLAlchemyError

from promofye.core.clock import ensure_utc, normalize_now, start_of_month
from promofye.core.config import settings
from promofye.core.database import get_db_session, usage_logs
from promofye.core.errors import UsageLimitExceededError, ValidationError
from promofye.core.logging import log_event
from promofye.core.metrics import usage_limit_block_total, usage_log_failures_total
from promofye.features.plans.service import get_active_subscription
from promofye.models.usage import ACTION_TYPES, UsageCheck, UsageLog, UsageSummary
from promofye.models.user import UserProfile

logger = logging.getLogger("promofye")

__all__ = [
    "start_of_month",
    "check_usage_limit",
    "log_usage",
    "get_monthly_usage",
    "list_usage_logs",
    "get_usage_summary",
    "ensure_can_generate",
]


def _sum_credits_since(user_id: str, since: datetime) -> int:
    with get_db_session() as session:
        total = session.execute(
            select(func.coalesce(func.sum(usage_logs.c.credits_used), 0))
            .where(usage_logs.c.user_id == user_id)
            .where(usage_logs.c.created_at >= since)
        ).scalar()
    return int(total or 0)


def check_usage_limit(user_id: str, now: Optional[datetime] = None) -> UsageCheck:
    """
    Check whether a user may generate another image this month.

    Pure read: no admin bypass here, see ensure_can_generate.

    Args:
        user_id: User to check
        now: Fixed timestamp for deterministic checks (defaults to now)

    Returns:
        UsageCheck(allowed, remaining, limit). Fails closed on a missing
        subscription or a database error.
    """
    try:
        subscription = get_active_subscription(user_id)
        if not subscription or not subscription.plan:
            return UsageCheck.denied()

        limit = subscription.plan.image_generations_limit
        used = _sum_credits_since(user_id, start_of_month(now))
    except SQLAlchemyError as e:
        logger.error(
            "usage.check_failed",
            extra={"user_id": user_id, "error": str(e)},
        )
        return UsageCheck.denied()

    remaining = max(0, limit - used)
    return UsageCheck(allowed=remaining > 0, remaining=remaining, limit=limit)


def log_usage(user_id: str, action_type: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
    """
    Record one credit for a successful generation.

    Returns:
        True if the row was written, False on a database error (logged)

    Raises:
        ValidationError: Unknown action_type
    """
    if action_type not in ACTION_TYPES:
        raise ValidationError(f"Unknown action type: {action_type}")

    try:
        with get_db_session() as session:
            session.execute(
                insert(usage_logs).values(
                    user_id=user_id,
                    action_type=action_type,
                    credits_used=1,
                    metadata=metadata or {},
                    created_at=normalize_now(None),
                )
            )
    except SQLAlchemyError as e:
        usage_log_failures_total.inc(labels={"action": action_type})
        logger.error(
            "usage.log_failed",
            extra={"user_id": user_id, "action_type": action_type, "error": str(e)},
        )
        return False

    log_event(
        "info",
        "usage.logged",
        user_id=user_id,
        event_type="usage",
        extra={"action_type": action_type},
    )
    return True


def get_monthly_usage(user_id: str, now: Optional[datetime] = None) -> int:
    """Credits used since the start of the current month (0 on error)."""
    try:
        return _sum_credits_since(user_id, start_of_month(now))
    except SQLAlchemyError as e:
        logger.error(
            "usage.monthly_failed",
            extra={"user_id": user_id, "error": str(e)},
        )
        return 0


def list_usage_logs(user_id: str, now: Optional[datetime] = None, limit: int = 50) -> List[UsageLog]:
    """This month's usage rows, newest first."""
    with get_db_session() as session:
        rows = session.execute(
            select(usage_logs)
            .where(usage_logs.c.user_id == user_id)
            .where(usage_logs.c.created_at >= start_of_month(now))
            .order_by(usage_logs.c.created_at.desc(), usage_logs.c.id.desc())
            .limit(limit)
        ).fetchall()

    return [
        UsageLog(
            id=row.id,
            user_id=row.user_id,
            action_type=row.action_type,
            credits_used=row.credits_used,
            metadata=row.metadata or {},
            created_at=ensure_utc(row.created_at),
        )
        for row in rows
    ]


def get_usage_summary(profile: UserProfile, now: Optional[datetime] = None) -> UsageSummary:
    """What the subscription page and the usage badge display."""
    subscription = get_active_subscription(profile.id)
    plan = subscription.plan if subscription else None
    used = get_monthly_usage(profile.id, now)

    if profile.is_admin:
        unlimited = settings.ADMIN_UNLIMITED_LIMIT
        return UsageSummary(
            plan_id=plan.id if plan else None,
            plan_name=plan.name if plan else None,
            used=used,
            limit=unlimited,
            remaining=unlimited,
            percent=0.0,
            is_low=False,
            is_exceeded=False,
            unlimited=True,
        )

    limit = plan.image_generations_limit if plan else 0
    remaining = max(0, limit - used)
    percent = min(100.0, round(used * 100.0 / limit, 1)) if limit > 0 else 0.0

    return UsageSummary(
        plan_id=plan.id if plan else None,
        plan_name=plan.name if plan else None,
        used=used,
        limit=limit,
        remaining=remaining,
        percent=percent,
        is_low=remaining <= settings.LOW_USAGE_THRESHOLD,
        is_exceeded=remaining == 0,
    )


def ensure_can_generate(profile: UserProfile, action_type: str) -> Optional[UsageCheck]:
    """
    Gate a generation on the monthly quota.

    Admins always pass (returns None for them).

    Raises:
        UsageLimitExceededError: No generations left this month
    """
    if profile.is_admin:
        return None

    check = check_usage_limit(profile.id)
    if not check.allowed:
        usage_limit_block_total.inc(labels={"action": action_type})
        log_event(
            "warning",
            "usage.limit_reached",
            user_id=profile.id,
            event_type="usage_block",
            error_code=UsageLimitExceededError.code,
            extra={"action_type": action_type, "limit": check.limit},
        )
        raise UsageLimitExceededError(
            f"You have reached your monthly limit of {check.limit} generations. "
            "Upgrade your plan to continue.",
            limit=check.limit,
            remaining=check.remaining,
        )
    return check
