"""
Pydantic schemas for property reviews.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


class PropertyReviewCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(..., alias="propertyId")
    overall_rating: int = Field(..., ge=1, le=5)
    connectivity_rating: Optional[int] = Field(None, ge=1, le=5)
    lifestyle_rating: Optional[int] = Field(None, ge=1, le=5)
    safety_rating: Optional[int] = Field(None, ge=1, le=5)
    green_area_rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=5000)
    positives: List[str] = Field(default_factory=list)
    negatives: List[str] = Field(default_factory=list)
