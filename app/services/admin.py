"""
Admin dashboard aggregates.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.property import PropertyStatus
from app.repositories.property import PropertyRepository
from app.repositories.review import ReviewRepository
from app.repositories.subscription import SubscriptionRepository
from app.repositories.user import UserRepository
from app.utils.numbers import round_half_up
from app.utils.timeutils import as_utc, isoformat

logger = logging.getLogger(__name__)

DEFAULT_USER_SATISFACTION = 4.5
RECENT_ACTIVITY_LIMIT = 10


class AdminService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.subscription_repo = SubscriptionRepository(db_session)
        self.review_repo = ReviewRepository(db_session)

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        by_status = await self.property_repo.get_status_counts()
        active = by_status.get(PropertyStatus.ACTIVE.value, 0)
        rejected = by_status.get(PropertyStatus.REJECTED.value, 0)
        decided = active + rejected

        satisfaction = await self.review_repo.average_approved_rating()

        return {
            "totalUsers": await self.user_repo.count(),
            "totalProperties": sum(by_status.values()),
            "pendingApprovals": by_status.get(PropertyStatus.PENDING.value, 0),
            "totalRevenue": float(await self.subscription_repo.total_revenue()),
            "activeListings": active,
            "approvalRate": round_half_up(active / decided * 100) if decided else 0,
            "avgResponseTime": await self._average_response_hours(),
            "userSatisfaction": round(satisfaction, 1) if satisfaction is not None else DEFAULT_USER_SATISFACTION,
            "recentActivity": await self._recent_activity(),
        }

    async def _average_response_hours(self) -> float:
        """Mean hours between creation and the last update of approved or rejected listings."""
        rows = await self.property_repo.get_decided()
        if not rows:
            return 0.0
        total = sum((as_utc(updated) - as_utc(created)).total_seconds() for created, updated in rows)
        return round(total / len(rows) / 3600, 1)

    async def _recent_activity(self) -> List[Dict[str, Any]]:
        events = []
        for user in await self.user_repo.get_recent(5):
            events.append({
                "type": "user",
                "message": f"New user registered: {user.name or user.email}",
                "at": as_utc(user.created_at),
            })
        for prop in await self.property_repo.get_recent(5):
            events.append({
                "type": "property",
                "message": f"Property listed: {prop.title}",
                "status": prop.status,
                "at": as_utc(prop.created_at),
            })
        for sub in await self.subscription_repo.get_recent(5):
            events.append({
                "type": "subscription",
                "message": f"Subscription purchased: {sub.plan_name}",
                "amount": float(sub.plan_price),
                "at": as_utc(sub.created_at),
            })

        events.sort(key=lambda event: event["at"], reverse=True)
        for event in events:
            event["timestamp"] = isoformat(event.pop("at"))
        return events[:RECENT_ACTIVITY_LIMIT]
