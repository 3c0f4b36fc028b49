"""
Summary of the live groups a user has joined by booking units.
"""

import logging
import re
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.live_group import LiveGroupProject, LiveGroupTower, LiveGroupUnit, ProjectStatus
from app.models.user import User
from app.repositories.live_group import LiveGroupRepository
from app.utils.numbers import round_half_up
from app.utils.timeutils import isoformat

logger = logging.getLogger(__name__)

REGULAR_PRICE_MARKUP = 1.2
_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")


def _to_float(value: Any) -> float:
    """Numeric value of a column or display price; display prices use their leading number."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    match = _LEADING_NUMBER.match(str(value).replace(",", "").replace("₹", ""))
    return float(match.group(1)) if match else 0.0


def joined_group_entry(unit: LiveGroupUnit, tower: LiveGroupTower, project: LiveGroupProject,
                       buyers_joined: int) -> Dict[str, Any]:
    buyers_required = project.min_buyers or 1
    progress = min(100, round_half_up(buyers_joined / buyers_required * 100))

    if (project.status or "").lower() == ProjectStatus.CLOSED.value:
        status = "closed"
    elif buyers_joined < buyers_required:
        status = "waiting"
    else:
        status = "active"

    area = _to_float(unit.area)
    user_price = _to_float(unit.price)
    if not user_price and area:
        user_price = area * (_to_float(unit.discount_price_per_sqft) or _to_float(project.group_price_per_sqft))

    regular_price = _to_float(project.original_price)
    if not regular_price and area:
        regular_price = area * (_to_float(unit.price_per_sqft) or _to_float(project.regular_price_per_sqft))
    if not regular_price and user_price:
        regular_price = user_price * REGULAR_PRICE_MARKUP

    token_paid = 0
    return {
        "id": str(unit.id),
        "projectId": str(project.id),
        "projectName": project.title,
        "projectImage": project.image,
        "location": project.location or "Prime Location",
        "developer": project.developer or "Premium Developer",
        "assetType": project.type or unit.unit_type or "Residential",
        "unitNumber": f"{tower.tower_name} - {unit.floor_number}{unit.unit_number}",
        "joinedDate": isoformat(unit.booked_at),
        "userJoinedPrice": user_price,
        "regularPrice": regular_price,
        "totalSavings": max(0.0, regular_price - user_price),
        "tokenPaid": token_paid,
        "remainingPayable": user_price - token_paid,
        "status": status,
        "buyersJoined": buyers_joined,
        "buyersRequired": buyers_required,
        "progressPercentage": progress,
        "isActivated": buyers_joined >= buyers_required,
    }


class JoinedLiveGroupsService:

    def __init__(self, db_session: AsyncSession):
        self.repo = LiveGroupRepository(db_session)

    async def get_joined(self, user: User) -> List[Dict[str, Any]]:
        rows = await self.repo.get_user_booked_units(user.id)
        counts = await self.repo.booked_counts(list({project.id for _, _, project in rows}))
        entries = [
            joined_group_entry(unit, tower, project, counts.get(project.id, 0))
            for unit, tower, project in rows
        ]
        logger.debug(f"{len(entries)} joined live groups for {user.email}")
        return entries
