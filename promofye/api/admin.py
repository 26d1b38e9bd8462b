"""
Admin back office routes. Every route requires an admin user.

- GET  /api/admin/users
- POST /api/admin/users/{user_id}/toggle-admin
- GET  /api/admin/api-keys
- POST /api/admin/api-keys
- POST /api/admin/api-keys/{key_id}/toggle
- GET  /api/admin/subscriptions
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promofye.core.auth import require_admin
from promofye.core.errors import ValidationError
from promofye.core.logging import log_event
from promofye.features.api_keys.service import (
    DEFAULT_PROVIDER,
    add_api_key,
    list_api_keys,
    toggle_api_key,
)
from promofye.features.plans.service import list_subscriptions_with_users
from promofye.features.users.service import list_users, toggle_admin
from promofye.models.user import UserProfile

router = APIRouter()


class ApiKeyCreate(BaseModel):
    name: str = ""
    provider: str = DEFAULT_PROVIDER
    api_key: str = ""


@router.get("/users")
def users(admin: UserProfile = Depends(require_admin)):
    return {"users": [user.model_dump(mode="json") for user in list_users()]}


@router.post("/users/{user_id}/toggle-admin")
def toggle_user_admin(user_id: str, admin: UserProfile = Depends(require_admin)):
    if user_id == admin.id:
        raise ValidationError("You cannot change your own admin status")
    profile = toggle_admin(user_id)
    log_event(
        "info",
        "admin.toggle_admin",
        user_id=admin.id,
        event_type="admin",
        extra={"target_user_id": user_id, "is_admin": profile.is_admin},
    )
    return {"user": profile.model_dump(mode="json")}


@router.get("/api-keys")
def api_keys(admin: UserProfile = Depends(require_admin)):
    return {"api_keys": [key.public_dict() for key in list_api_keys()]}


@router.post("/api-keys", status_code=201)
def create_api_key(request: ApiKeyCreate, admin: UserProfile = Depends(require_admin)):
    key = add_api_key(request.name, request.provider, request.api_key, created_by=admin.id)
    return {"api_key": key.public_dict()}


@router.post("/api-keys/{key_id}/toggle")
def toggle_key(key_id: str, admin: UserProfile = Depends(require_admin)):
    return {"api_key": toggle_api_key(key_id).public_dict()}


@router.get("/subscriptions")
def subscriptions(admin: UserProfile = Depends(require_admin)):
    return {"subscriptions": [sub.model_dump(mode="json") for sub in list_subscriptions_with_users()]}
