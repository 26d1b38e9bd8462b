"""
User domain service.
- sign_up / authenticate (bcrypt password hashes)
- get_profile / update_profile / change_password
- list_users / set_admin / toggle_admin (admin back office)
"""

from typing import List, Optional
from uuid import uuid4
import logging

import bcrypt
from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from promofye.core.clock import ensure_utc, utcnow
from promofye.core.config import settings
from promofye.core.database import get_db_session, user_profiles
from promofye.core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from promofye.core.logging import log_event
from promofye.models.user import UserProfile

logger = logging.getLogger("promofye")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _row_to_profile(row) -> UserProfile:
    return UserProfile(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        is_admin=bool(row.is_admin),
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def _validate_new_password(password: str) -> None:
    if len(password or "") < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")


def get_profile(user_id: str) -> Optional[UserProfile]:
    with get_db_session() as session:
        row = session.execute(select(user_profiles).where(user_profiles.c.id == user_id)).first()
        return _row_to_profile(row) if row else None


def require_profile(user_id: str) -> UserProfile:
    profile = get_profile(user_id)
    if not profile:
        raise NotFoundError(f"User {user_id} not found")
    return profile


def get_profile_by_email(email: str) -> Optional[UserProfile]:
    with get_db_session() as session:
        row = session.execute(
            select(user_profiles).where(user_profiles.c.email == normalize_email(email))
        ).first()
        return _row_to_profile(row) if row else None


def sign_up(email: str, password: str, full_name: Optional[str] = None, *, is_admin: bool = False) -> UserProfile:
    """
    Create an account and put it on the default plan.

    Raises:
        ValidationError: Missing email or short password
        ConflictError: Email already registered
    """
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid email address is required")
    _validate_new_password(password)

    if get_profile_by_email(email):
        raise ConflictError("An account with this email already exists")

    now = utcnow()
    user_id = str(uuid4())
    try:
        with get_db_session() as session:
            session.execute(
                insert(user_profiles).values(
                    id=user_id,
                    email=email,
                    full_name=(full_name or "").strip() or None,
                    password_hash=hash_password(password),
                    is_admin=is_admin,
                    created_at=now,
                    updated_at=now,
                )
            )
    except IntegrityError:
        raise ConflictError("An account with this email already exists")

    # Every new account starts on the default plan
    from promofye.features.plans.service import get_default_plan, assign_plan

    default_plan = get_default_plan()
    if default_plan:
        assign_plan(user_id, default_plan.id)
    else:
        logger.warning("signup.no_default_plan", extra={"user_id": user_id})

    log_event("info", "user.signed_up", user_id=user_id, event_type="signup")
    return require_profile(user_id)


def authenticate(email: str, password: str) -> UserProfile:
    with get_db_session() as session:
        row = session.execute(
            select(user_profiles).where(user_profiles.c.email == normalize_email(email))
        ).first()
    if not row or not verify_password(password or "", row.password_hash):
        raise AuthenticationError("Invalid email or password")
    return _row_to_profile(row)


def update_profile(user_id: str, full_name: Optional[str]) -> UserProfile:
    with get_db_session() as session:
        result = session.execute(
            update(user_profiles)
            .where(user_profiles.c.id == user_id)
            .values(full_name=(full_name or "").strip() or None, updated_at=utcnow())
        )
        if result.rowcount == 0:
            raise NotFoundError(f"User {user_id} not found")
    return require_profile(user_id)


def change_password(user_id: str, current_password: str, new_password: str, confirm_password: str) -> None:
    """Change a password after re-checking the current one.

    Checks run in the order the settings form reports them.
    """
    if not current_password:
        raise ValidationError("Current password is required")
    if new_password != confirm_password:
        raise ValidationError("New passwords do not match")
    _validate_new_password(new_password)

    with get_db_session() as session:
        row = session.execute(
            select(user_profiles.c.password_hash).where(user_profiles.c.id == user_id)
        ).first()
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        if not verify_password(current_password, row.password_hash):
            raise ValidationError("Current password is incorrect")
        session.execute(
            update(user_profiles)
            .where(user_profiles.c.id == user_id)
            .values(password_hash=hash_password(new_password), updated_at=utcnow())
        )

    log_event("info", "user.password_changed", user_id=user_id, event_type="password_change")


def list_users() -> List[UserProfile]:
    with get_db_session() as session:
        rows = session.execute(
            select(user_profiles).order_by(user_profiles.c.created_at.desc())
        ).all()
        return [_row_to_profile(row) for row in rows]


def set_admin(user_id: str, is_admin: bool) -> UserProfile:
    with get_db_session() as session:
        result = session.execute(
            update(user_profiles)
            .where(user_profiles.c.id == user_id)
            .values(is_admin=is_admin, updated_at=utcnow())
        )
        if result.rowcount == 0:
            raise NotFoundError(f"User {user_id} not found")
    return require_profile(user_id)


def toggle_admin(user_id: str) -> UserProfile:
    profile = require_profile(user_id)
    return set_admin(user_id, not profile.is_admin)
