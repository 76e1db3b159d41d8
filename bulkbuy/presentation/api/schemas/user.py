from typing import Optional

from pydantic import EmailStr, Field

from .base import CamelModel


class ProfileUpdatePayload(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
