"""
Pydantic schemas for live-group projects, towers and units.

Hierarchy payloads nest towers and units. In a sync, entries that carry an
``id`` update an existing row, entries without one are created, and rows
missing from the payload are deleted.
"""

from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional, List
from decimal import Decimal
from app.models.live_group import ProjectStatus


class ProjectFields(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    developer: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    original_price: Optional[str] = Field(None, max_length=100)
    group_price: Optional[str] = Field(None, max_length=100)
    discount: Optional[str] = Field(None, max_length=100)
    savings: Optional[str] = Field(None, max_length=100)
    type: Optional[str] = Field(None, max_length=100)
    min_buyers: Optional[int] = Field(None, ge=1)
    possession: Optional[str] = Field(None, max_length=100)
    rera_number: Optional[str] = Field(None, max_length=100)
    area: Optional[str] = Field(None, max_length=100)
    regular_price_per_sqft: Optional[Decimal] = Field(None, ge=0)
    group_price_per_sqft: Optional[Decimal] = Field(None, ge=0)


class ProjectCreate(ProjectFields):
    title: str = Field(..., min_length=1, max_length=255, examples=["Skyline Residency"])


class UnitInput(BaseModel):
    """A unit inside a hierarchy payload."""

    id: Optional[str] = None
    floor_number: int = Field(..., ge=-1)
    unit_number: str = Field(..., min_length=1, max_length=20)
    unit_type: Optional[str] = Field(None, max_length=50)
    area: Optional[Decimal] = Field(None, ge=0)
    carpet_area: Optional[Decimal] = Field(None, ge=0)
    super_built_up_area: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    price_per_sqft: Optional[Decimal] = Field(None, ge=0)
    discount_price_per_sqft: Optional[Decimal] = Field(None, ge=0)


class TowerInput(BaseModel):
    id: Optional[str] = None
    tower_name: str = Field(..., min_length=1, max_length=100)
    total_floors: int = Field(..., ge=0, le=200)
    units: List[UnitInput] = Field(default_factory=list)

    @validator("units")
    def unique_unit_labels(cls, v):
        seen = set()
        for unit in v:
            key = (unit.floor_number, unit.unit_number)
            if key in seen:
                raise ValueError(f"Duplicate unit {unit.unit_number} on floor {unit.floor_number}")
            seen.add(key)
        return v


class HierarchyCreate(ProjectCreate):
    towers: List[TowerInput] = Field(default_factory=list)


class HierarchySync(ProjectFields):
    """Full desired state of a project, guarded by the version the editor last read."""

    version: int = Field(..., ge=1)
    towers: List[TowerInput] = Field(default_factory=list)


class TowerCreate(BaseModel):
    tower_name: str = Field(..., min_length=1, max_length=100, examples=["Tower A"])
    total_floors: int = Field(..., ge=0, le=200, examples=[12])


class GenerateUnitsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    units_per_floor: int = Field(..., alias="unitsPerFloor", ge=1, le=8)
    price_per_unit: Optional[Decimal] = Field(None, alias="pricePerUnit", ge=0)
    unit_type: Optional[str] = Field(None, alias="unitType", max_length=50)
    area_per_unit: Optional[Decimal] = Field(None, alias="areaPerUnit", ge=0)
    has_basement: bool = Field(False, alias="hasBasement")
    has_ground_floor: bool = Field(False, alias="hasGroundFloor")


class UnitUpdate(BaseModel):
    floor_number: Optional[int] = Field(None, ge=-1)
    unit_number: Optional[str] = Field(None, min_length=1, max_length=20)
    unit_type: Optional[str] = Field(None, max_length=50)
    area: Optional[Decimal] = Field(None, ge=0)
    carpet_area: Optional[Decimal] = Field(None, ge=0)
    super_built_up_area: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    price_per_sqft: Optional[Decimal] = Field(None, ge=0)
    discount_price_per_sqft: Optional[Decimal] = Field(None, ge=0)


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class BookingOrderRequest(BaseModel):
    unit_id: str
    amount: Decimal = Field(..., gt=0)


class PaymentData(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class UnitBookRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_data: PaymentData = Field(..., alias="paymentData")
