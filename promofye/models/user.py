"""
promofye/models/user.py

UserProfile model. Credentials are stored with the profile row but never
leave the users service.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    full_name: Optional[str] = None
    is_admin: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def display_name(self) -> str:
        if self.full_name and self.full_name.strip():
            return self.full_name.strip()
        return self.email.split("@", 1)[0]
