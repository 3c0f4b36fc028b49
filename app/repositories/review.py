"""
Property review repository with approval queue and rating aggregates.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from app.repositories.base import BaseRepository
from app.models.review import PropertyReview
from typing import Any, Dict, List, Optional
import uuid


class ReviewRepository(BaseRepository[PropertyReview]):

    def __init__(self, db: AsyncSession):
        super().__init__(PropertyReview, db)

    async def get_approved(self, property_id: uuid.UUID) -> List[PropertyReview]:
        result = await self.db.execute(
            select(PropertyReview)
            .where(PropertyReview.property_id == property_id, PropertyReview.is_approved.is_(True))
            .order_by(PropertyReview.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_pending(self) -> List[PropertyReview]:
        result = await self.db.execute(
            select(PropertyReview)
            .where(PropertyReview.is_approved.is_(False))
            .order_by(PropertyReview.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_stats(self, property_id: uuid.UUID) -> Dict[str, Any]:
        """Counts and averages over approved reviews of one property."""
        stars = [
            func.sum(case((PropertyReview.overall_rating == n, 1), else_=0)).label(f"star_{n}")
            for n in range(5, 0, -1)
        ]
        result = await self.db.execute(
            select(
                func.count(PropertyReview.id).label("total"),
                func.avg(PropertyReview.overall_rating).label("avg_overall"),
                func.avg(PropertyReview.connectivity_rating).label("avg_connectivity"),
                func.avg(PropertyReview.lifestyle_rating).label("avg_lifestyle"),
                func.avg(PropertyReview.safety_rating).label("avg_safety"),
                func.avg(PropertyReview.green_area_rating).label("avg_green_area"),
                *stars,
            ).where(PropertyReview.property_id == property_id, PropertyReview.is_approved.is_(True))
        )
        return dict(result.mappings().one())

    async def average_approved_rating(self) -> Optional[float]:
        result = await self.db.execute(
            select(func.avg(PropertyReview.overall_rating)).where(PropertyReview.is_approved.is_(True))
        )
        value = result.scalar()
        return float(value) if value is not None else None
