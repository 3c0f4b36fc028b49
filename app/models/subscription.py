"""
Subscription purchases and the per-listing credit usage log.
"""

from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils.timeutils import isoformat
from datetime import datetime
from decimal import Decimal
import uuid
from typing import Any, Dict, Optional


class UserSubscription(Base):
    """One paid plan purchase."""

    __tablename__ = "user_subscriptions"

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id: Mapped[str] = mapped_column(String(50), nullable=False)
    plan_name: Mapped[str] = mapped_column(String(100), nullable=False)
    plan_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    plan_type: Mapped[str] = mapped_column(String(20), nullable=False, default="individual")
    properties_allowed: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    properties_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    razorpay_order_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    razorpay_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "plan_id": self.plan_id,
            "plan_name": self.plan_name,
            "plan_price": float(self.plan_price),
            "plan_type": self.plan_type,
            "properties_allowed": self.properties_allowed,
            "properties_used": self.properties_used,
            "status": self.status,
            "expiry_date": isoformat(self.expiry_date),
            "created_at": isoformat(self.created_at),
        }


class SubscriptionUsage(Base):
    """Audit row written whenever a posting credit is consumed."""

    __tablename__ = "subscription_usage"

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
