"""
Administrator endpoints: dashboard statistics and listing management.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Query, status

from app.models.user import User
from app.repositories.property import AdminPropertyFilters
from app.services.admin import AdminService
from app.services.property import PropertyService
from app.schemas.property import AdminPropertyCreate, AdminPropertyStatusUpdate, AdminPropertyUpdate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_admin_service, get_current_admin_user, get_property_service
from app.schemas.error import get_common_error_responses


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(rate_limit("mutation")), Depends(get_current_admin_user)],
    responses=get_common_error_responses()
)


@router.get("/stats", summary="Dashboard statistics")
async def get_dashboard_stats(admin_service: AdminService = Depends(get_admin_service)) -> Dict[str, Any]:
    return await admin_service.get_dashboard_stats()


@router.get("/properties/stats", summary="Listing counters")
async def get_property_stats(property_service: PropertyService = Depends(get_property_service)) -> Dict[str, int]:
    return await property_service.admin_stats()


@router.get("/properties", summary="Search all listings")
async def list_properties(
    source: Optional[str] = Query(None, description="Individual, Developer, Admin or all"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Matches title, location or company name"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    filters = AdminPropertyFilters(
        source=None if source == "all" else source,
        status=status_filter,
        search=search,
        limit=limit,
        offset=offset
    )
    properties, total = await property_service.admin_search(filters)
    return {"properties": [p.to_dict(include_owner=True) for p in properties], "count": total}


@router.post("/properties", status_code=status.HTTP_201_CREATED, summary="Create a listing")
async def create_property(
    data: AdminPropertyCreate,
    admin: User = Depends(get_current_admin_user),
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    property_obj = await property_service.admin_create(data, admin)
    return {"property": property_obj.to_dict()}


@router.put("/properties/{property_id}", summary="Update a listing")
async def update_property(
    property_id: str,
    data: AdminPropertyUpdate,
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    property_obj = await property_service.admin_update(property_id, data)
    return {"property": property_obj.to_dict()}


@router.patch("/properties/{property_id}/status", summary="Change status or featured flag")
async def set_property_status(
    property_id: str,
    data: AdminPropertyStatusUpdate,
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    property_obj = await property_service.admin_set_status(property_id, data)
    return {"property": property_obj.to_dict()}


@router.delete("/properties/{property_id}", summary="Delete a listing")
async def delete_property(
    property_id: str,
    property_service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    await property_service.admin_delete(property_id)
    return {"success": True, "message": "Property deleted successfully"}
