"""
Site visit booking model.
"""

from sqlalchemy import String, Text, Integer, Numeric, DateTime, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils.timeutils import isoformat
from datetime import date, datetime
from decimal import Decimal
import enum
import uuid
from typing import Optional


class PaymentMethod(str, enum.Enum):
    POSTVISIT = "postvisit"
    RAZORPAY_PREVISIT = "razorpay_previsit"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    """Site visit requested by a user, optionally for a specific property."""

    __tablename__ = "bookings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("properties.id", ondelete="SET NULL"), nullable=True, index=True
    )
    property_title: Mapped[str] = mapped_column(String(255), nullable=False)
    property_location: Mapped[str] = mapped_column(String(255), nullable=False, default="Not Specified")

    visit_date: Mapped[date] = mapped_column(Date, nullable=False)
    visit_time: Mapped[str] = mapped_column(String(20), nullable=False)
    visit_mode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    pickup_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    number_of_people: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    person1_name: Mapped[str] = mapped_column(String(255), nullable=False)
    person2_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    person3_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    payment_method: Mapped[str] = mapped_column(String(30), nullable=False, default=PaymentMethod.POSTVISIT.value)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    razorpay_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    payment_currency: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    payment_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "property_id": str(self.property_id) if self.property_id else None,
            "property_title": self.property_title,
            "property_location": self.property_location,
            "visit_date": self.visit_date.isoformat(),
            "visit_time": self.visit_time,
            "visit_mode": self.visit_mode,
            "pickup_address": self.pickup_address,
            "number_of_people": self.number_of_people,
            "person1_name": self.person1_name,
            "person2_name": self.person2_name,
            "person3_name": self.person3_name,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "status": self.status,
            "razorpay_order_id": self.razorpay_order_id,
            "razorpay_payment_id": self.razorpay_payment_id,
            "payment_amount": float(self.payment_amount) if self.payment_amount is not None else None,
            "payment_currency": self.payment_currency,
            "payment_timestamp": isoformat(self.payment_timestamp),
            "created_at": isoformat(self.created_at),
        }
