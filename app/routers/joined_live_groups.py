"""
Live groups the caller has joined.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from app.models.user import User
from app.services.joined_live_groups import JoinedLiveGroupsService
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_joined_live_groups_service
from app.schemas.error import get_common_error_responses


router = APIRouter(
    prefix="/joined-live-groups",
    tags=["Live Grouping"],
    dependencies=[Depends(rate_limit("read"))],
    responses=get_common_error_responses()
)


@router.get("", summary="Units the caller booked, with group progress and savings")
async def get_joined_live_groups(
    current_user: User = Depends(get_current_user),
    service: JoinedLiveGroupsService = Depends(get_joined_live_groups_service)
) -> Dict[str, Any]:
    groups = await service.get_joined(current_user)
    return {"success": True, "joinedGroups": groups, "count": len(groups)}
