from typing import Optional

from fastapi import APIRouter, Depends, Query

from promofye.core.auth import get_current_user
from promofye.features.history.service import delete_history_item, get_history_item, list_history
from promofye.models.user import UserProfile

router = APIRouter()


@router.get("")
def history(
    image_type: Optional[str] = Query(None, alias="type"),
    user: UserProfile = Depends(get_current_user),
):
    items = list_history(user.id, image_type)
    return {"items": [item.model_dump(mode="json") for item in items]}


@router.get("/{item_id}")
def history_item(item_id: str, user: UserProfile = Depends(get_current_user)):
    return get_history_item(user.id, item_id).model_dump(mode="json")


@router.delete("/{item_id}")
def remove_history_item(item_id: str, user: UserProfile = Depends(get_current_user)):
    delete_history_item(user.id, item_id)
    return {"ok": True}
