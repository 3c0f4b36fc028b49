"""
Pydantic schemas for short-stay listings, reservations, calendar and guest reviews.
"""

from pydantic import BaseModel, ConfigDict, Field, validator
from typing import Optional, Dict, Any, List, Union
from datetime import date
from decimal import Decimal
from app.models.short_stay import CalendarStatus


class ShortStayUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    location: Optional[Dict[str, Any]] = None
    pricing: Optional[Dict[str, Any]] = None
    rules: Optional[Dict[str, Any]] = None
    policies: Optional[Dict[str, Any]] = None
    amenities: Optional[Union[List[str], Dict[str, Any]]] = None
    specific_details: Optional[Dict[str, Any]] = None
    images: Optional[List[str]] = None
    status: Optional[str] = Field(None, pattern=r"^(active|inactive)$")


class ReserveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(..., alias="propertyId")
    check_in: date = Field(..., alias="checkIn")
    check_out: date = Field(..., alias="checkOut")
    guests: Dict[str, Any] = Field(default_factory=lambda: {"adults": 1})
    payment_id: Optional[str] = Field(None, alias="paymentId")


class VerifyBookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reservation_id: str = Field(..., alias="reservationId")
    booking_code: str = Field(..., alias="bookingCode", min_length=1)

    @validator("booking_code")
    def normalize_code(cls, v):
        return v.strip().upper()


class CalendarUpdate(BaseModel):
    """Host override for one night."""

    model_config = ConfigDict(populate_by_name=True)

    property_id: str = Field(..., alias="propertyId")
    night: date = Field(..., alias="date")
    price: Optional[Decimal] = Field(None, ge=0)
    status: CalendarStatus = CalendarStatus.AVAILABLE


class ReviewRatings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cleanliness: int = Field(..., ge=1, le=5)
    accuracy: int = Field(..., ge=1, le=5)
    check_in: int = Field(..., alias="checkIn", ge=1, le=5)
    communication: int = Field(..., ge=1, le=5)
    location: int = Field(..., ge=1, le=5)
    value: int = Field(..., ge=1, le=5)


class ShortStayReviewCreate(BaseModel):
    booking_id: str
    ratings: ReviewRatings
    overall_rating: Decimal = Field(..., ge=1, le=5)
    public_comment: str = Field(..., min_length=1, max_length=5000)
    private_feedback: Optional[str] = Field(None, max_length=5000)
    recommend: Optional[bool] = None
    safety_issues: Optional[str] = Field(None, max_length=5000)
