"""
promofye/models/generated_image.py

GeneratedImage history record.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict

ImageType = Literal["thumbnail", "product", "reimagine"]


class GeneratedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    title: str
    prompt: Optional[str] = None
    image_url: str  # data URL
    image_type: ImageType
    metadata: Dict[str, Any] = {}
    created_at: datetime
