"""
promofye/models/image.py

ImagePart: an inline image sent to or returned from the image API.
"""

import base64
import binascii
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


class ImagePart(BaseModel):
    """
    Base64 image payload plus its MIME type.

    Accepts either raw base64 or a full data URL in base64_data; the data URL
    prefix is stripped and its MIME type used when mime_type is omitted.
    """
    model_config = ConfigDict(frozen=True)

    base64_data: str
    mime_type: str

    @model_validator(mode="before")
    @classmethod
    def _split_data_url(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        raw = values.get("base64_data")
        if isinstance(raw, str):
            match = _DATA_URL_RE.match(raw.strip())
            if match:
                values = dict(values)
                values["base64_data"] = match.group("data")
                values.setdefault("mime_type", match.group("mime"))
        return values

    @field_validator("mime_type")
    @classmethod
    def _image_mime(cls, value: str) -> str:
        value = (value or "").strip().lower()
        if not value.startswith("image/"):
            raise ValueError("mime_type must be an image/* type")
        return value

    @field_validator("base64_data")
    @classmethod
    def _decodable(cls, value: str) -> str:
        value = "".join((value or "").split())
        if not value:
            raise ValueError("base64_data is required")
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("base64_data is not valid base64")
        return value

    def decoded_size(self) -> int:
        return len(base64.b64decode(self.base64_data))

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.base64_data)

    def to_data_url(self) -> str:
        return to_data_url(self.base64_data, self.mime_type)


def to_data_url(base64_data: str, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64_data}"
