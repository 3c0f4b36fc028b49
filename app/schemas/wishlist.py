"""
Pydantic schemas for wishlists.
Name and property id are optional here; the service turns missing values into 400s.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class WishlistCreate(BaseModel):
    name: Optional[str] = None


class WishlistAddProperty(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: Optional[str] = Field(None, alias="propertyId")
