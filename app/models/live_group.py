"""
Live group (collective purchase) hierarchy: projects, towers and units.

Units move available -> locked -> booked. A lock is a short hold taken while
the buyer pays; expired locks are released by the periodic sweep. Projects
carry a version number used as an optimistic lock by the bulk hierarchy sync.
"""

from sqlalchemy import String, Text, Integer, Numeric, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils.timeutils import isoformat
from datetime import datetime
from decimal import Decimal
import enum
import uuid
from typing import List, Optional


class ProjectStatus(str, enum.Enum):
    LIVE = "live"
    ACTIVE = "active"
    UPCOMING = "upcoming"
    CLOSED = "closed"


class UnitStatus(str, enum.Enum):
    AVAILABLE = "available"
    LOCKED = "locked"
    BOOKED = "booked"


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class LiveGroupProject(Base):
    """A collective purchase project."""

    __tablename__ = "live_group_projects"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    developer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProjectStatus.LIVE.value, index=True)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    original_price: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    group_price: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    discount: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    savings: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    min_buyers: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    possession: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    rera_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    area: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    regular_price_per_sqft: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    group_price_per_sqft: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    total_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    towers: Mapped[List["LiveGroupTower"]] = relationship(
        "LiveGroupTower",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by=lambda: [LiveGroupTower.position, LiveGroupTower.tower_name]
    )

    def to_dict(self, include_towers: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "title": self.title,
            "developer": self.developer,
            "location": self.location,
            "description": self.description,
            "status": self.status,
            "image": self.image,
            "images": self.images or [],
            "original_price": self.original_price,
            "group_price": self.group_price,
            "discount": self.discount,
            "savings": self.savings,
            "type": self.type,
            "min_buyers": self.min_buyers,
            "possession": self.possession,
            "rera_number": self.rera_number,
            "area": self.area,
            "regular_price_per_sqft": _num(self.regular_price_per_sqft),
            "group_price_per_sqft": _num(self.group_price_per_sqft),
            "total_slots": self.total_slots,
            "version": self.version,
            "created_at": isoformat(self.created_at),
        }
        if include_towers:
            result["towers"] = [tower.to_dict(include_units=True) for tower in self.towers]
        return result


class LiveGroupTower(Base):
    """A tower inside a project."""

    __tablename__ = "live_group_towers"

    project_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("live_group_projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    tower_name: Mapped[str] = mapped_column(String(100), nullable=False)
    total_floors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    project: Mapped["LiveGroupProject"] = relationship("LiveGroupProject", back_populates="towers")
    units: Mapped[List["LiveGroupUnit"]] = relationship(
        "LiveGroupUnit",
        back_populates="tower",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by=lambda: [LiveGroupUnit.floor_number, LiveGroupUnit.unit_number]
    )

    def to_dict(self, include_units: bool = False) -> dict:
        result = {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "tower_name": self.tower_name,
            "total_floors": self.total_floors,
        }
        if include_units:
            result["units"] = [unit.to_dict() for unit in self.units]
        return result


class LiveGroupUnit(Base):
    """A purchasable unit on one floor of a tower."""

    __tablename__ = "live_group_units"

    tower_id: Mapped[uuid.UUID] = mapped_column(
        PostgresUUID(as_uuid=True),
        ForeignKey("live_group_towers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    floor_number: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_number: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    area: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    carpet_area: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    super_built_up_area: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    price_per_sqft: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    discount_price_per_sqft: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=UnitStatus.AVAILABLE.value)
    locked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    booked_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        PostgresUUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    booked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    tower: Mapped["LiveGroupTower"] = relationship("LiveGroupTower", back_populates="units")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "tower_id": str(self.tower_id),
            "floor_number": self.floor_number,
            "unit_number": self.unit_number,
            "unit_type": self.unit_type,
            "area": _num(self.area),
            "carpet_area": _num(self.carpet_area),
            "super_built_up_area": _num(self.super_built_up_area),
            "price": _num(self.price),
            "price_per_sqft": _num(self.price_per_sqft),
            "discount_price_per_sqft": _num(self.discount_price_per_sqft),
            "status": self.status,
            "locked_at": isoformat(self.locked_at),
            "locked_by": str(self.locked_by) if self.locked_by else None,
            "booked_by": str(self.booked_by) if self.booked_by else None,
            "booked_at": isoformat(self.booked_at),
        }


# Lock sweep scans locked units by age
unit_status_locked_index = Index(
    "idx_live_group_units_status_locked_at",
    LiveGroupUnit.status,
    LiveGroupUnit.locked_at
)
