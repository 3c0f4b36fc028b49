"""
Pydantic schemas for marketplace listings, admin listing management and favorites.
"""

from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional, List, Dict, Any
from datetime import date
from decimal import Decimal
from app.models.property import CreditType, PropertySource, PropertyStatus


def _as_list(v):
    """Accept a single string where a list is expected."""
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    return v


class PropertyFields(BaseModel):
    """Listing attributes shared by create and update."""

    title: Optional[str] = Field(None, min_length=1, max_length=255, examples=["3 BHK Apartment in Vesu"])
    type: Optional[str] = Field(None, max_length=100, examples=["Flat"])
    location: Optional[str] = Field(None, max_length=255, examples=["Surat, Gujarat"])
    price: Optional[str] = Field(None, max_length=100, examples=["85 Lakh"])
    bhk: Optional[int] = Field(None, ge=0, le=50)
    area: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    facilities: Optional[List[str]] = None
    image_url: Optional[str] = None
    images: Optional[List[str]] = None
    company_name: Optional[str] = Field(None, max_length=255)
    project_name: Optional[str] = Field(None, max_length=255)
    total_units: Optional[int] = Field(None, ge=0)
    completion_date: Optional[date] = None
    rera_number: Optional[str] = Field(None, max_length=100)
    scheme_type: Optional[str] = Field(None, max_length=100)
    residential_options: Optional[List[str]] = None
    commercial_options: Optional[List[str]] = None
    base_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    project_location: Optional[str] = Field(None, max_length=255)
    amenities: Optional[List[str]] = None
    owner_name: Optional[str] = Field(None, max_length=255)
    possession_status: Optional[str] = Field(None, max_length=100)
    rera_status: Optional[str] = Field(None, max_length=50)
    project_stats: Optional[Dict[str, Any]] = None
    contact_phone: Optional[str] = Field(None, max_length=20)
    metadata: Optional[Dict[str, Any]] = None

    @validator("facilities", "images", "residential_options", "commercial_options", "amenities", pre=True)
    def coerce_lists(cls, v):
        return _as_list(v)

    @validator("title")
    def strip_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip() if v else v

    def to_columns(self, exclude_unset: bool = False) -> Dict[str, Any]:
        """Column values; the public `metadata` key maps to the `extra` attribute."""
        data = self.model_dump(exclude_unset=exclude_unset)
        if not exclude_unset:
            # Unset optional fields fall back to the column defaults.
            data = {key: value for key, value in data.items() if value is not None}
        if "metadata" in data:
            data["extra"] = data.pop("metadata") or {}
        if not exclude_unset and not data.get("image_url") and data.get("images"):
            data["image_url"] = data["images"][0]
        return data


class PropertyCreate(PropertyFields):
    title: str = Field(..., min_length=1, max_length=255, examples=["3 BHK Apartment in Vesu"])
    credit_used: CreditType = Field(CreditType.INDIVIDUAL, description="Which posting credit to spend")
    user_type: Optional[str] = Field(None, max_length=20)


class PropertyUpdate(PropertyFields):
    pass


class AdminPropertyCreate(PropertyFields):
    """Listing created by an administrator; no credit is spent."""

    title: str = Field(..., min_length=1, max_length=255)
    property_source: PropertySource = PropertySource.ADMIN
    status: PropertyStatus = PropertyStatus.ACTIVE
    is_featured: bool = False


class AdminPropertyUpdate(PropertyFields):
    property_source: Optional[PropertySource] = None
    status: Optional[PropertyStatus] = None
    is_featured: Optional[bool] = None


class AdminPropertyStatusUpdate(BaseModel):
    status: Optional[PropertyStatus] = None
    is_featured: Optional[bool] = None


class FavoriteToggleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: Optional[str] = Field(None, alias="propertyId")
