"""
Google Gemini / Imagen image client.

Thin wrapper over google-genai that returns base64 strings (or None when
the model produced no image). A Pillow-rendered placeholder stands in when
no API key is configured.
"""

import base64
import colorsys
import logging
import random
from io import BytesIO
from typing import List, Optional, Sequence

from google import genai
from google.genai import types
from PIL import Image, ImageChops, ImageDraw, ImageFont

from promofye.core.config import settings
from promofye.features.api_keys.service import get_active_api_key, validate_key_format
from promofye.models.image import ImagePart

logger = logging.getLogger("promofye")

MOCK_SIZE = 1024
MOCK_TEXT_LIMIT = 50
MOCK_LINE_WIDTH = 30
MOCK_LINE_HEIGHT = 40


def _b64(data) -> Optional[str]:
    if not data:
        return None
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")


class GeminiImageClient:
    """Imagen for text-to-image, the Gemini image model for edits and composites."""

    def __init__(self, api_key: Optional[str] = None, client=None, *, image_model: Optional[str] = None, imagen_model: Optional[str] = None):
        self._client = client or genai.Client(api_key=api_key)
        self.image_model = image_model or settings.GEMINI_IMAGE_MODEL
        self.imagen_model = imagen_model or settings.IMAGEN_MODEL

    def generate_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[str]:
        response = self._client.models.generate_images(
            model=self.imagen_model,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type="image/jpeg",
                aspect_ratio=aspect_ratio,
            ),
        )
        generated = getattr(response, "generated_images", None) or []
        if not generated or generated[0].image is None:
            return None
        return _b64(generated[0].image.image_bytes)

    def edit_image(self, parts: Sequence[ImagePart], text: str, *, label: Optional[str] = None) -> Optional[str]:
        logger.debug("generation.edit_image", extra={"model": self.image_model, "parts": len(parts), "label": label})
        contents: List[object] = [
            types.Part.from_bytes(data=part.to_bytes(), mime_type=part.mime_type)
            for part in parts
        ]
        contents.append(text)

        response = self._client.models.generate_content(
            model=self.image_model,
            contents=contents,
            config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
        )
        candidates = getattr(response, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            return None
        for part in candidates[0].content.parts or []:
            if part.inline_data:
                return _b64(part.inline_data.data)
        return None


def _hsl(hue: int, saturation: float, lightness: float):
    r, g, b = colorsys.hls_to_rgb(hue / 360.0, lightness, saturation)
    return int(round(r * 255)), int(round(g * 255)), int(round(b * 255))


def mock_image(prompt: str, *, hue: Optional[int] = None) -> str:
    """Diagonal two-stop gradient JPEG with the prompt centred on it."""
    hue1 = random.randint(0, 359) if hue is None else hue % 360
    hue2 = (hue1 + 60) % 360

    # (x + y) / 2 ramps 0 -> 255 from the top-left corner to the bottom-right
    vertical = Image.linear_gradient("L").resize((MOCK_SIZE, MOCK_SIZE))
    mask = ImageChops.add(vertical, vertical.transpose(Image.Transpose.TRANSPOSE), scale=2.0)
    start = Image.new("RGB", (MOCK_SIZE, MOCK_SIZE), _hsl(hue1, 0.7, 0.6))
    end = Image.new("RGB", (MOCK_SIZE, MOCK_SIZE), _hsl(hue2, 0.7, 0.5))
    image = Image.composite(end, start, mask).convert("RGBA")

    overlay = Image.new("RGBA", image.size, (255, 255, 255, 0))
    draw = ImageDraw.Draw(overlay)
    font = ImageFont.load_default(size=32)
    text = (prompt or "")[:MOCK_TEXT_LIMIT]
    lines = [text[i:i + MOCK_LINE_WIDTH] for i in range(0, len(text), MOCK_LINE_WIDTH)] or [text]
    center = MOCK_SIZE // 2
    start_y = center - ((len(lines) - 1) * MOCK_LINE_HEIGHT) / 2
    for i, line in enumerate(lines):
        draw.text((center, start_y + i * MOCK_LINE_HEIGHT), line, font=font, fill=(255, 255, 255, 230), anchor="mm")

    buffer = BytesIO()
    Image.alpha_composite(image, overlay).convert("RGB").save(buffer, format="JPEG", quality=90)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class MockImageClient:
    """Used when no provider key exists; every call yields a placeholder."""

    def generate_image(self, prompt: str, aspect_ratio: str = "1:1") -> Optional[str]:
        logger.info("generation.mock", extra={"prompt": prompt[:MOCK_TEXT_LIMIT], "aspect_ratio": aspect_ratio})
        return mock_image(prompt)

    def edit_image(self, parts: Sequence[ImagePart], text: str, *, label: Optional[str] = None) -> Optional[str]:
        caption = label or text
        logger.info("generation.mock", extra={"prompt": caption[:MOCK_TEXT_LIMIT], "parts": len(parts)})
        return mock_image(caption)


def get_image_client():
    """Client for the active provider key, or the mock client without one.

    Raises:
        ApiKeyConfigError: A key is configured but malformed
    """
    api_key = get_active_api_key()
    if not api_key:
        return MockImageClient()
    return GeminiImageClient(validate_key_format(api_key))
