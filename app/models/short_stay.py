"""
Short-stay rental listings with reservations, nightly calendar, favorites and guest reviews.
"""

from sqlalchemy import String, Text, Integer, Numeric, Boolean, Date, ForeignKey, JSON, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils.timeutils import isoformat
from datetime import date
from decimal import Decimal
import enum
import uuid
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.user import User


class ReservationStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class CalendarStatus(str, enum.Enum):
    AVAILABLE = "available"
    BLOCKED = "blocked"


class ShortStayProperty(Base):
    """A rentable home or room listed by a host."""

    __tablename__ = "short_stay_properties"

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    location: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    pricing: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    rules: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    policies: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    amenities: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    specific_details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    cover_image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)

    host: Mapped["User"] = relationship("User", lazy="selectin")

    @property
    def nightly_price(self) -> Optional[Decimal]:
        value = (self.pricing or {}).get("perNight")
        if value in (None, ""):
            return None
        return Decimal(str(value))

    def to_dict(self, include_host: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "location": self.location or {},
            "pricing": self.pricing or {},
            "rules": self.rules or {},
            "policies": self.policies or {},
            "amenities": self.amenities if self.amenities is not None else {},
            "specific_details": self.specific_details or {},
            "images": self.images or [],
            "cover_image": self.cover_image,
            "status": self.status,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_host and self.host:
            result["host"] = {
                "name": self.host.name,
                "email": self.host.email,
                "phone": self.host.phone,
                "photo": self.host.profile_photo,
            }
        return result


class ShortStayFavorite(Base):
    __tablename__ = "short_stay_favorites"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_short_stay_favorites_user_property"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("short_stay_properties.id", ondelete="CASCADE"), nullable=False
    )


class ShortStayReservation(Base):
    """A confirmed stay between check-in (inclusive) and check-out (exclusive)."""

    __tablename__ = "short_stay_reservations"

    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("short_stay_properties.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    host_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    guests: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)
    booking_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    is_host_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    listing: Mapped["ShortStayProperty"] = relationship("ShortStayProperty", lazy="selectin")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def to_dict(self, include_property: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "user_id": str(self.user_id),
            "host_id": str(self.host_id),
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "guests": self.guests or {},
            "total_price": float(self.total_price),
            "payment_id": self.payment_id,
            "status": self.status,
            "booking_code": self.booking_code,
            "is_host_verified": self.is_host_verified,
            "created_at": isoformat(self.created_at),
        }
        if include_property and self.listing:
            result["property_title"] = self.listing.title
            result["property_image"] = self.listing.cover_image
        return result


class ShortStayCalendar(Base):
    """Per-night price override or block set by the host."""

    __tablename__ = "short_stay_calendar"
    __table_args__ = (UniqueConstraint("property_id", "date", name="uq_short_stay_calendar_property_date"),)

    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("short_stay_properties.id", ondelete="CASCADE"), nullable=False
    )
    night: Mapped[date] = mapped_column("date", Date, nullable=False)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CalendarStatus.AVAILABLE.value)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "date": self.night.isoformat(),
            "price": float(self.price) if self.price is not None else None,
            "status": self.status,
        }


class ShortStayReview(Base):
    """Guest review left after a completed stay."""

    __tablename__ = "short_stay_reviews"

    reservation_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("short_stay_reservations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("short_stay_properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    cleanliness: Mapped[int] = mapped_column(Integer, nullable=False)
    accuracy: Mapped[int] = mapped_column(Integer, nullable=False)
    check_in: Mapped[int] = mapped_column(Integer, nullable=False)
    communication: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    overall_rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)
    public_comment: Mapped[str] = mapped_column(Text, nullable=False)
    private_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recommend: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    safety_issues: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_dict(self) -> dict:
        # Private feedback is for the host only and never listed publicly.
        return {
            "id": str(self.id),
            "reservation_id": str(self.reservation_id),
            "property_id": str(self.property_id),
            "user_id": str(self.user_id),
            "ratings": {
                "cleanliness": self.cleanliness,
                "accuracy": self.accuracy,
                "checkIn": self.check_in,
                "communication": self.communication,
                "location": self.location,
                "value": self.value,
            },
            "overall_rating": float(self.overall_rating),
            "public_comment": self.public_comment,
            "recommend": self.recommend,
            "user_name": self.user_name,
            "user_photo": self.user_photo,
            "created_at": isoformat(self.created_at),
        }


reservation_property_dates_index = Index(
    "idx_short_stay_reservations_property_dates",
    ShortStayReservation.property_id,
    ShortStayReservation.check_in,
    ShortStayReservation.check_out
)
