"""
Pydantic schemas for subscription purchase.
"""

from pydantic import BaseModel, Field


class CreateOrderRequest(BaseModel):
    plan_id: str = Field(..., min_length=1, examples=["6_months"])


class SubscriptionVerifyRequest(BaseModel):
    plan_id: str = Field(..., min_length=1)
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
