"""
Pydantic schemas for user profiles.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional


class UserResponse(BaseModel):
    """Public profile returned by auth and user endpoints."""

    id: str
    email: str
    name: str
    phone: Optional[str] = None
    profile_photo: Optional[str] = None
    role: str
    user_type: str
    is_active: bool
    is_verified: bool
    individual_credits: int = 0
    developer_credits: int = 0
    is_subscribed: bool = False
    subscription_expiry: Optional[str] = None
    subscription_plan: Optional[str] = None
    created_at: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255, examples=["Asha Patel"])
    phone: Optional[str] = Field(None, max_length=20, examples=["+91 98765 43210"])

    @validator("name")
    def strip_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v else v

    @validator("phone")
    def strip_phone(cls, v):
        return v.strip() if v else v


class UserStatsResponse(BaseModel):
    properties: int
    bookings: int
    liveGroupings: int
    favorites: int
    shortStayBookings: int
