"""
Marketplace favorites.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from app.models.user import User
from app.services.property import FavoriteService
from app.schemas.property import FavoriteToggleRequest
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_favorite_service
from app.schemas.error import get_common_error_responses


router = APIRouter(
    prefix="/favorites",
    tags=["Favorites"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.post("/toggle", summary="Add or remove a favorite")
async def toggle_favorite(
    data: FavoriteToggleRequest,
    current_user: User = Depends(get_current_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> Dict[str, Any]:
    is_favorite = await favorite_service.toggle(current_user, data.property_id)
    return {"success": True, "isFavorite": is_favorite}


@router.get("/ids", summary="Ids of favorited properties")
async def get_favorite_ids(
    current_user: User = Depends(get_current_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> Dict[str, Any]:
    return {"favoriteIds": await favorite_service.favorite_ids(current_user)}


@router.get("", summary="Favorited properties")
async def get_favorites(
    current_user: User = Depends(get_current_user),
    favorite_service: FavoriteService = Depends(get_favorite_service)
) -> Dict[str, Any]:
    properties = await favorite_service.favorite_properties(current_user)
    return {"properties": [p.to_dict() for p in properties]}
