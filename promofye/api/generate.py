"""
Image generation routes (editor, product studio, reimaginer).

Images travel as base64 with a MIME type, or as data URLs.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promofye.core.auth import get_current_user
from promofye.features.generation import prompts
from promofye.features.generation.service import (
    GenerationResult,
    generate_product_photo_shoot,
    generate_scene,
    generate_thumbnail,
    reimagine_image,
)
from promofye.models.image import ImagePart
from promofye.models.user import UserProfile

router = APIRouter()


class SceneRequest(BaseModel):
    prompt: str = ""


class ThumbnailRequest(BaseModel):
    prompt: str = ""
    images: List[ImagePart] = []
    preset: str = prompts.DEFAULT_PRESET
    examples: List[ImagePart] = []


class ProductRequest(BaseModel):
    image: Optional[ImagePart] = None
    prompt: str = ""
    examples: List[ImagePart] = []


class ReimagineRequest(BaseModel):
    prompt: str = ""
    image: Optional[ImagePart] = None
    use_image: bool = False


def _result_payload(result: GenerationResult) -> dict:
    payload = {
        "image_base64": result.image_base64,
        "mime_type": result.mime_type,
        "data_url": result.data_url,
    }
    if result.history_item is not None:
        payload["history_item"] = result.history_item.model_dump(mode="json")
    return payload


@router.get("/presets")
def list_presets():
    return {"presets": prompts.THUMBNAIL_PRESETS, "default": prompts.DEFAULT_PRESET}


@router.post("/scene")
def scene(request: SceneRequest, user: UserProfile = Depends(get_current_user)):
    return _result_payload(generate_scene(user, request.prompt))


@router.post("/thumbnail")
def thumbnail(request: ThumbnailRequest, user: UserProfile = Depends(get_current_user)):
    result = generate_thumbnail(user, request.prompt, request.images, request.preset, request.examples)
    return _result_payload(result)


@router.post("/product")
def product(request: ProductRequest, user: UserProfile = Depends(get_current_user)):
    result = generate_product_photo_shoot(user, request.image, request.prompt, request.examples)
    return _result_payload(result)


@router.post("/reimagine")
def reimagine(request: ReimagineRequest, user: UserProfile = Depends(get_current_user)):
    result = reimagine_image(user, request.prompt, request.image, require_image=request.use_image)
    return _result_payload(result)
