"""
Marketplace property listings and user favorites.
Listings carry developer project details in optional columns and free-form JSON.
"""

from sqlalchemy import String, Text, Integer, Numeric, Boolean, Date, ForeignKey, Index, JSON, UniqueConstraint
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


class PropertyStatus(str, enum.Enum):
    """Listing moderation and lifecycle states."""
    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"
    SOLD = "sold"
    INACTIVE = "inactive"


class PropertySource(str, enum.Enum):
    """Who posted the listing."""
    INDIVIDUAL = "Individual"
    DEVELOPER = "Developer"
    ADMIN = "Admin"


class CreditType(str, enum.Enum):
    """Which posting credit pays for a listing."""
    INDIVIDUAL = "individual"
    DEVELOPER = "developer"


class Property(Base):
    """Property listing posted by a user or an administrator."""

    __tablename__ = "properties"

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    price: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Display price, e.g. '1.2 Cr' or '45,00,000'"
    )
    bhk: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    area: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    facilities: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # Developer project details
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    project_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    total_units: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completion_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    rera_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    scheme_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    residential_options: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    commercial_options: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    base_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    max_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    project_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    amenities: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    possession_status: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    rera_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    project_stats: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    extra: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    # Lifecycle
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PropertyStatus.ACTIVE.value, index=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, default="individual", index=True)
    property_source: Mapped[str] = mapped_column(String(20), nullable=False, default=PropertySource.INDIVIDUAL.value)
    credit_used: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner of the listing"
    )

    owner: Mapped["User"] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}, status={self.status})>"

    def to_dict(self, include_owner: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "title": self.title,
            "type": self.type,
            "location": self.location,
            "price": self.price,
            "bhk": self.bhk,
            "area": self.area,
            "description": self.description,
            "facilities": self.facilities or [],
            "image_url": self.image_url,
            "images": self.images or [],
            "company_name": self.company_name,
            "project_name": self.project_name,
            "total_units": self.total_units,
            "completion_date": self.completion_date.isoformat() if self.completion_date else None,
            "rera_number": self.rera_number,
            "scheme_type": self.scheme_type,
            "residential_options": self.residential_options or [],
            "commercial_options": self.commercial_options or [],
            "base_price": float(self.base_price) if self.base_price is not None else None,
            "max_price": float(self.max_price) if self.max_price is not None else None,
            "project_location": self.project_location,
            "amenities": self.amenities or [],
            "owner_name": self.owner_name,
            "possession_status": self.possession_status,
            "rera_status": self.rera_status,
            "project_stats": self.project_stats or {},
            "contact_phone": self.contact_phone,
            "metadata": self.extra or {},
            "status": self.status,
            "is_featured": self.is_featured,
            "user_type": self.user_type,
            "property_source": self.property_source,
            "credit_used": self.credit_used,
            "user_id": str(self.user_id),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
        if include_owner and self.owner:
            result["owner"] = {
                "name": self.owner.name,
                "email": self.owner.email,
                "phone": self.owner.phone,
            }
        return result


class Favorite(Base):
    """A property saved by a user."""

    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )


# Listing search by status and recency
status_created_index = Index(
    "idx_properties_status_created",
    Property.status,
    Property.created_at.desc()
)
