"""
Subscription purchase and credit usage repositories.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.repositories.base import BaseRepository
from app.models.subscription import UserSubscription, SubscriptionUsage
from typing import List, Optional
from decimal import Decimal
import uuid


class SubscriptionRepository(BaseRepository[UserSubscription]):

    def __init__(self, db: AsyncSession):
        super().__init__(UserSubscription, db)

    async def get_latest_active(self, user_id: uuid.UUID) -> Optional[UserSubscription]:
        result = await self.db.execute(
            select(UserSubscription)
            .where(UserSubscription.user_id == user_id, UserSubscription.status == "active")
            .order_by(UserSubscription.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def total_revenue(self) -> Decimal:
        result = await self.db.execute(select(func.coalesce(func.sum(UserSubscription.plan_price), 0)))
        return Decimal(str(result.scalar() or 0))

    async def get_recent(self, limit: int = 5) -> List[UserSubscription]:
        result = await self.db.execute(
            select(UserSubscription).order_by(UserSubscription.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())


class SubscriptionUsageRepository(BaseRepository[SubscriptionUsage]):

    def __init__(self, db: AsyncSession):
        super().__init__(SubscriptionUsage, db)
