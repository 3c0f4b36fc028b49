"""
Pydantic schemas for site-visit bookings and their payment confirmation.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import date
from app.models.booking import PaymentMethod


class BookingCreate(BaseModel):
    property_id: Optional[str] = None
    property_title: Optional[str] = Field(None, max_length=255)
    property_location: Optional[str] = Field(None, max_length=255)
    visit_date: date = Field(..., examples=["2025-03-14"])
    visit_time: str = Field(..., min_length=1, max_length=20, examples=["11:00 AM"])
    visit_mode: Optional[str] = Field(None, max_length=50, examples=["self"])
    pickup_address: Optional[str] = None
    number_of_people: int = Field(1, ge=1, le=3)
    person1_name: str = Field(..., min_length=1, max_length=255)
    person2_name: Optional[str] = Field(None, max_length=255)
    person3_name: Optional[str] = Field(None, max_length=255)
    payment_method: PaymentMethod = PaymentMethod.POSTVISIT

    @validator("person1_name")
    def strip_name(cls, v):
        if not v.strip():
            raise ValueError("person1_name is required")
        return v.strip()


class BookingPaymentVerify(BaseModel):
    """Checkout result returned by Razorpay for a previsit booking."""

    booking_id: str
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
