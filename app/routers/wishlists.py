"""
Wishlist endpoints.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status

from app.models.user import User
from app.services.wishlist import WishlistService
from app.schemas.wishlist import WishlistAddProperty, WishlistCreate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_wishlist_service
from app.schemas.error import get_common_error_responses


router = APIRouter(
    prefix="/wishlists",
    tags=["Wishlists"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.get("", summary="Caller's wishlists with property counts")
async def list_wishlists(
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
) -> Dict[str, Any]:
    return {"wishlists": await service.list_wishlists(current_user)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a wishlist")
async def create_wishlist(
    data: WishlistCreate,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
) -> Dict[str, Any]:
    wishlist = await service.create_wishlist(current_user, data.name)
    return {"success": True, "wishlist": wishlist.to_dict()}


@router.get("/{wishlist_id}", summary="Properties in a wishlist")
async def get_wishlist(
    wishlist_id: str,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
) -> Dict[str, Any]:
    properties = await service.get_properties(wishlist_id, current_user)
    return {"properties": [p.to_dict() for p in properties]}


@router.post("/{wishlist_id}/properties", status_code=status.HTTP_201_CREATED, summary="Add a property")
async def add_property(
    wishlist_id: str,
    data: WishlistAddProperty,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
) -> Dict[str, Any]:
    await service.add_property(wishlist_id, current_user, data.property_id)
    return {"success": True, "message": "Property added to wishlist"}


@router.delete("/{wishlist_id}/properties/{property_id}", summary="Remove a property")
async def remove_property(
    wishlist_id: str,
    property_id: str,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
) -> Dict[str, Any]:
    await service.remove_property(wishlist_id, current_user, property_id)
    return {"success": True, "message": "Property removed from wishlist"}


@router.delete("/{wishlist_id}", summary="Delete a wishlist")
async def delete_wishlist(
    wishlist_id: str,
    current_user: User = Depends(get_current_user),
    service: WishlistService = Depends(get_wishlist_service)
) -> Dict[str, Any]:
    await service.delete_wishlist(wishlist_id, current_user)
    return {"success": True, "message": "Wishlist deleted"}
