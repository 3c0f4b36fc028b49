"""
Marketplace property endpoints: public search, credit-backed posting and owner management.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, status

from app.models.user import User
from app.repositories.property import PropertySearchFilters
from app.services.property import PropertyService
from app.schemas.property import PropertyCreate, PropertyUpdate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_property_service
from app.schemas.error import get_common_error_responses, get_crud_error_responses


router = APIRouter(
    prefix="/properties",
    tags=["Properties"],
    dependencies=[Depends(rate_limit("mutation"))]
)


@router.get(
    "",
    summary="List properties",
    description="Public listing, newest first. Defaults to active properties."
)
async def list_properties(
    type: Optional[str] = Query(None, description="Property type"),
    location: Optional[str] = Query(None, description="Case-insensitive location match"),
    user_type: Optional[str] = Query(None, alias="userType", description="Poster type"),
    user_type_snake: Optional[str] = Query(None, alias="user_type", include_in_schema=False),
    status_filter: Optional[str] = Query("active", alias="status", description="Listing status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    filters = PropertySearchFilters(
        type=type,
        location=location,
        user_type=user_type or user_type_snake,
        status=status_filter,
        limit=limit,
        offset=offset
    )
    properties, total = await property_service.search_properties(filters)
    return {"properties": [p.to_dict() for p in properties], "count": total}


@router.get(
    "/user/my-properties",
    summary="Caller's properties",
    responses=get_common_error_responses()
)
async def get_my_properties(
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    properties = await property_service.get_user_properties(current_user)
    return {"properties": [p.to_dict() for p in properties], "count": len(properties)}


@router.get(
    "/{property_id}",
    summary="Get property",
    description="Property details with the owner's contact information",
    responses=get_common_error_responses()
)
async def get_property(
    property_id: str,
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    property_obj = await property_service.get_property(property_id)
    return {"property": property_obj.to_dict(include_owner=True)}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Post a property",
    description="Spends one posting credit of the type named by `credit_used`",
    responses=get_crud_error_responses()
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    """
    Raises:
        InsufficientCreditsError: The chosen credit balance is exhausted (403)
    """
    property_obj, credits = await property_service.create_property(property_data, current_user)
    return {"property": property_obj.to_dict(), "credits": credits}


@router.put(
    "/{property_id}",
    summary="Update own property",
    description="Owners may edit a listing within 3 days of posting",
    responses=get_crud_error_responses()
)
async def update_property(
    property_id: str,
    property_data: PropertyUpdate,
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    property_obj = await property_service.update_property(property_id, property_data, current_user)
    return {"property": property_obj.to_dict()}


@router.delete(
    "/{property_id}",
    summary="Delete own property",
    responses=get_common_error_responses()
)
async def delete_property(
    property_id: str,
    current_user: User = Depends(get_current_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    await property_service.delete_property(property_id, current_user)
    return {"success": True, "message": "Property deleted successfully"}
