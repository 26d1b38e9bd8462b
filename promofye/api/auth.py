"""
Auth API routes.

- POST /api/auth/signup
- POST /api/auth/login
- GET  /api/auth/me
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promofye.core.auth import get_current_user, issue_access_token
from promofye.features.plans.service import get_subscription
from promofye.features.users.service import authenticate, sign_up
from promofye.models.user import UserProfile

router = APIRouter()


class SignupRequest(BaseModel):
    email: str
    password: str
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


def _token_response(profile: UserProfile) -> dict:
    return {
        "access_token": issue_access_token(profile.id, profile.email),
        "token_type": "bearer",
        "user": profile.model_dump(mode="json"),
    }


@router.post("/signup", status_code=201)
def signup(request: SignupRequest):
    profile = sign_up(request.email, request.password, request.full_name)
    return _token_response(profile)


@router.post("/login")
def login(request: LoginRequest):
    profile = authenticate(request.email, request.password)
    return _token_response(profile)


@router.get("/me")
def me(user: UserProfile = Depends(get_current_user)):
    """Profile plus the latest subscription (with plan)."""
    subscription = get_subscription(user.id)
    return {
        "user": user.model_dump(mode="json"),
        "subscription": subscription.model_dump(mode="json") if subscription else None,
    }
