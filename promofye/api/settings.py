"""
Account settings routes.

- PATCH /api/settings/profile
- POST  /api/settings/password
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promofye.core.auth import get_current_user
from promofye.features.users.service import change_password, update_profile
from promofye.models.user import UserProfile

router = APIRouter()


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


@router.patch("/profile")
def patch_profile(request: ProfileUpdate, user: UserProfile = Depends(get_current_user)):
    profile = update_profile(user.id, request.full_name)
    return {"user": profile.model_dump(mode="json"), "message": "Profile updated successfully"}


@router.post("/password")
def post_password(request: PasswordChange, user: UserProfile = Depends(get_current_user)):
    change_password(user.id, request.current_password, request.new_password, request.confirm_password)
    return {"ok": True, "message": "Password updated successfully"}
