"""Image generation operations.

Every operation validates its input, gates on the monthly quota, calls the
image client, records one usage credit after a successful result and saves
the image to history where the page keeps one.
"""

from typing import Callable, List, Optional, Sequence
import logging

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError

from promofye.core.config import settings
from promofye.core.errors import (
    AppError,
    ApiKeyConfigError,
    EmptyGenerationError,
    GenerationError,
    PayloadTooLargeError,
    ValidationError,
)
from promofye.core.logging import log_event
from promofye.core.metrics import generations_total
from promofye.features.generation import prompts
from promofye.features.generation.gemini import get_image_client
from promofye.features.history.service import add_history_item
from promofye.features.usage.service import ensure_can_generate, log_usage
from promofye.models.generated_image import GeneratedImage
from promofye.models.image import ImagePart, to_data_url
from promofye.models.user import UserProfile

logger = logging.getLogger("promofye")

INVALID_KEY_MESSAGE = "Invalid Google Gemini API key. Please verify your API key in the Admin Dashboard."
EMPTY_RESULT_MESSAGE = "Image generation returned no result. Please try again."
AUTH_ERROR_MARKERS = ("UNAUTHENTICATED", "CREDENTIALS", "API key")

SCENE_FAILED = "Failed to generate scene. The prompt may have been rejected. Please try a different description."
THUMBNAIL_FAILED = "Failed to generate thumbnail. Please try again."
PRODUCT_FAILED = (
    "Failed to generate product photoshoot. The image may have been rejected by the AI safety "
    "filters. Please try a different description or image."
)
REIMAGINE_FAILED = "Failed to generate image. The prompt may have been rejected or the service is unavailable."


class GenerationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_base64: str
    mime_type: str
    history_item: Optional[GeneratedImage] = None

    @property
    def data_url(self) -> str:
        return to_data_url(self.image_base64, self.mime_type)


def _require_text(value: Optional[str], message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


def _check_sizes(parts: Sequence[ImagePart]) -> None:
    for part in parts:
        if part.decoded_size() > settings.MAX_IMAGE_BYTES:
            raise PayloadTooLargeError(
                f"Image exceeds the maximum size of {settings.MAX_IMAGE_BYTES // (1024 * 1024)} MB"
            )


def _call_model(action: str, user_id: str, failure_message: str, call: Callable[[], Optional[str]]) -> str:
    """Run a model call, mapping provider failures to AppErrors."""
    try:
        result = call()
    except AppError:
        generations_total.inc(labels={"action": action, "outcome": "error"})
        raise
    except Exception as e:
        message = str(e)
        generations_total.inc(labels={"action": action, "outcome": "error"})
        log_event(
            "error",
            "generation.failed",
            user_id=user_id,
            event_type="generation",
            error_code=type(e).__name__,
            extra={"action_type": action, "error": message},
        )
        if any(marker in message for marker in AUTH_ERROR_MARKERS):
            raise ApiKeyConfigError(INVALID_KEY_MESSAGE) from e
        raise GenerationError(failure_message) from e

    if not result:
        generations_total.inc(labels={"action": action, "outcome": "empty"})
        raise EmptyGenerationError(EMPTY_RESULT_MESSAGE)

    generations_total.inc(labels={"action": action, "outcome": "success"})
    return result


def _record_usage(user: UserProfile, action: str, metadata: dict) -> None:
    if not log_usage(user.id, action, metadata):
        # the image was produced; the user still gets it
        logger.warning("generation.usage_not_recorded", extra={"user_id": user.id, "action_type": action})


def _save_history(
    user: UserProfile,
    image_type: str,
    image_url: str,
    prompt: str,
    parts: Sequence[ImagePart],
) -> Optional[GeneratedImage]:
    """Keep the result in history; a failed save still returns the image."""
    try:
        return add_history_item(user.id, image_type, image_url, prompt, parts)
    except SQLAlchemyError as e:
        log_event(
            "error",
            "generation.history_not_saved",
            user_id=user.id,
            event_type="generation",
            error_code=type(e).__name__,
            extra={"action_type": image_type, "error": str(e)},
        )
        return None


def generate_scene(user: UserProfile, prompt: str) -> GenerationResult:
    """16:9 background scene from a description. Not kept in history."""
    prompt = _require_text(prompt, "Please describe the scene you want to generate.")
    ensure_can_generate(user, "scene")
    client = get_image_client()

    image = _call_model(
        "scene",
        user.id,
        SCENE_FAILED,
        lambda: client.generate_image(prompts.scene_prompt(prompt), aspect_ratio="16:9"),
    )
    _record_usage(user, "scene", {"prompt": prompt[:200]})
    return GenerationResult(image_base64=image, mime_type="image/jpeg")


def generate_thumbnail(
    user: UserProfile,
    prompt: str,
    images: Sequence[ImagePart],
    preset_name: Optional[str] = None,
    examples: Optional[Sequence[ImagePart]] = None,
) -> GenerationResult:
    """
    Composite the uploaded assets into a thumbnail for a platform preset.

    Example images, when given, are sent first and switch the system prompt
    to style replication.
    """
    images = list(images or [])
    examples = list(examples or [])
    if not images:
        raise ValidationError("Please upload at least one image asset.")
    prompt = _require_text(prompt, "Please provide a prompt to guide the AI.")
    preset = prompts.get_preset(preset_name)
    if preset is None:
        raise ValidationError(f"Unknown thumbnail preset: {preset_name}")
    _check_sizes(examples + images)

    ensure_can_generate(user, "thumbnail")
    client = get_image_client()

    text = prompts.thumbnail_prompt(prompt, str(preset["name"]), with_examples=bool(examples))
    image = _call_model(
        "thumbnail",
        user.id,
        THUMBNAIL_FAILED,
        lambda: client.edit_image(examples + images, text, label=f"Thumbnail for: {prompt}"),
    )
    _record_usage(user, "thumbnail", {
        "prompt": prompt[:200],
        "preset": preset["name"],
        "assets": len(images),
        "examples": len(examples),
    })

    mime_type = images[0].mime_type
    item = _save_history(user, "thumbnail", to_data_url(image, mime_type), prompt, images)
    return GenerationResult(image_base64=image, mime_type=mime_type, history_item=item)


def generate_product_photo_shoot(
    user: UserProfile,
    image: Optional[ImagePart],
    prompt: str,
    examples: Optional[Sequence[ImagePart]] = None,
) -> GenerationResult:
    """Place the product from `image` into the scene described by `prompt`."""
    if image is None:
        raise ValidationError("Please upload a product image first.")
    prompt = (prompt or "").strip()
    examples = list(examples or [])
    _check_sizes(examples + [image])

    ensure_can_generate(user, "product_shoot")
    client = get_image_client()

    text = prompts.product_prompt(prompt, with_examples=bool(examples))
    result = _call_model(
        "product_shoot",
        user.id,
        PRODUCT_FAILED,
        lambda: client.edit_image(examples + [image], text, label=prompt),
    )
    _record_usage(user, "product_shoot", {"prompt": prompt[:200], "examples": len(examples)})

    item = _save_history(user, "product", to_data_url(result, "image/jpeg"), prompt, [image])
    return GenerationResult(image_base64=result, mime_type="image/jpeg", history_item=item)


def reimagine_image(
    user: UserProfile,
    prompt: str,
    image: Optional[ImagePart] = None,
    *,
    require_image: bool = False,
) -> GenerationResult:
    """Edit `image` with the prompt, or create a 1:1 image from text alone."""
    prompt = _require_text(prompt, "Please enter a prompt to guide the AI.")
    if require_image and image is None:
        raise ValidationError("Please upload an image to transform, or toggle off the image input.")
    parts: List[ImagePart] = [image] if image is not None else []
    _check_sizes(parts)

    ensure_can_generate(user, "reimagine")
    client = get_image_client()

    if parts:
        call = lambda: client.edit_image(parts, prompt, label=prompt)  # noqa: E731
    else:
        call = lambda: client.generate_image(prompt, aspect_ratio="1:1")  # noqa: E731
    result = _call_model("reimagine", user.id, REIMAGINE_FAILED, call)
    _record_usage(user, "reimagine", {"prompt": prompt[:200], "has_base_image": bool(parts)})

    mime_type = image.mime_type if image is not None else "image/jpeg"
    item = _save_history(user, "reimagine", to_data_url(result, mime_type), prompt, parts)
    return GenerationResult(image_base64=result, mime_type=mime_type, history_item=item)
