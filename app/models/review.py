"""
Moderated reviews of marketplace properties.
"""

from sqlalchemy import Text, Integer, Boolean, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils.timeutils import isoformat
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.user import User


class PropertyReview(Base):
    """Neighbourhood and property ratings, hidden until an admin approves them."""

    __tablename__ = "property_reviews"

    property_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    connectivity_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lifestyle_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    safety_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    green_area_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    positives: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    negatives: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    author: Mapped["User"] = relationship("User", lazy="selectin")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "user_id": str(self.user_id),
            "user_name": self.author.name if self.author else None,
            "overall_rating": self.overall_rating,
            "connectivity_rating": self.connectivity_rating,
            "lifestyle_rating": self.lifestyle_rating,
            "safety_rating": self.safety_rating,
            "green_area_rating": self.green_area_rating,
            "comment": self.comment,
            "positives": self.positives or [],
            "negatives": self.negatives or [],
            "is_approved": self.is_approved,
            "created_at": isoformat(self.created_at),
        }
