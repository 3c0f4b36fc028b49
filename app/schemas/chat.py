"""
Pydantic schemas for buyer/owner chat.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional


class ChatCreate(BaseModel):
    property_id: str
    owner_id: str
    property_title: Optional[str] = Field(None, max_length=255)
    property_image: Optional[str] = None


class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)

    @validator("message")
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v.strip()
