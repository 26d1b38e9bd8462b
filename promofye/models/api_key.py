from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


def mask_secret(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * 8}{value[-4:]}"


class ApiKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    provider: str
    api_key: str = Field(repr=False)
    is_active: bool = True
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def masked_key(self) -> str:
        return mask_secret(self.api_key)

    def public_dict(self) -> dict:
        """Admin listing shape; the raw key is never echoed back."""
        data = self.model_dump(exclude={"api_key"})
        data["masked_key"] = self.masked_key
        return data
