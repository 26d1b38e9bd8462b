"""
Auth utilities for the Promofye API.

Issues and verifies HS256 access tokens and resolves the current user
from the Authorization header.
"""
from datetime import timedelta
from typing import Optional
import logging

import jwt
from fastapi import Depends, Request

from promofye.core.clock import utcnow
from promofye.core.config import settings
from promofye.core.errors import AuthenticationError, PermissionError
from promofye.features.users.service import get_profile
from promofye.models.user import UserProfile

logger = logging.getLogger("promofye")


def _secret() -> str:
    if not settings.JWT_SECRET:
        raise AuthenticationError("Authentication is not configured")
    return settings.JWT_SECRET


def issue_access_token(user_id: str, email: Optional[str] = None, expires_minutes: Optional[int] = None) -> str:
    now = utcnow()
    payload = {
        "sub": user_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or settings.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a token and return its user_id ('sub' claim).

    Raises:
        AuthenticationError: Expired, malformed or unsigned token
    """
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationError("Invalid token")

    return payload["sub"]


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(request: Request) -> UserProfile:
    """FastAPI dependency: the signed-in user's profile (401 otherwise)."""
    token = _bearer_token(request)
    if not token:
        raise AuthenticationError("Not authenticated")

    user_id = decode_access_token(token)
    profile = get_profile(user_id)
    if not profile:
        raise AuthenticationError("User no longer exists")

    request.state.user_id = profile.id
    return profile


async def require_admin(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """FastAPI dependency: the signed-in user, who must be an admin (403 otherwise)."""
    if not user.is_admin:
        raise PermissionError("Admin access required")
    return user
