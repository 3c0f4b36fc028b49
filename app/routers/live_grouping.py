"""
Live group buying: project hierarchy reads, unit lock/book and admin management.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status

from app.models.user import User
from app.services.live_group import LiveGroupService
from app.schemas.live_group import (
    BookingOrderRequest,
    GenerateUnitsRequest,
    HierarchyCreate,
    HierarchySync,
    ProjectCreate,
    ProjectStatusUpdate,
    TowerCreate,
    UnitBookRequest,
    UnitUpdate
)
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_admin_user, get_current_user, get_live_group_service
from app.schemas.error import get_common_error_responses, get_crud_error_responses, get_error_responses


router = APIRouter(
    prefix="/live-grouping-dynamic",
    tags=["Live Grouping"],
    dependencies=[Depends(rate_limit("read"))],
    responses=get_common_error_responses()
)


@router.get("", summary="Open projects")
async def list_projects(service: LiveGroupService = Depends(get_live_group_service)) -> Dict[str, Any]:
    return {"projects": await service.list_projects()}


@router.get("/{project_id}/full", summary="Project with towers and units")
async def get_full_project(
    project_id: str,
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    project = await service.get_full(project_id)
    return {"project": project.to_dict(include_towers=True)}


@router.post("/units/{unit_id}/lock", summary="Hold a unit while paying")
async def lock_unit(
    unit_id: str,
    current_user: User = Depends(get_current_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    unit = await service.lock_unit(unit_id, current_user)
    return {"success": True, "message": "Unit locked", "unit": unit.to_dict()}


@router.post("/create-booking-order", summary="Payment order for a unit", responses=get_error_responses(502))
async def create_booking_order(
    data: BookingOrderRequest,
    current_user: User = Depends(get_current_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    return await service.create_booking_order(current_user, data)


@router.post("/units/{unit_id}/book", summary="Confirm a paid unit booking")
async def book_unit(
    unit_id: str,
    data: UnitBookRequest,
    current_user: User = Depends(get_current_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    unit = await service.book_unit(unit_id, current_user, data.payment_data)
    return {"success": True, "message": "Unit booked successfully", "unit": unit.to_dict()}


# Admin

@router.post("/admin/projects", status_code=status.HTTP_201_CREATED, summary="Create a project")
async def create_project(
    data: ProjectCreate,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    project = await service.create_project(data, admin)
    return {"project": project.to_dict()}


@router.post(
    "/admin/projects/hierarchy",
    status_code=status.HTTP_201_CREATED,
    summary="Create a project with towers and units"
)
async def create_hierarchy(
    data: HierarchyCreate,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    project = await service.create_hierarchy(data, admin)
    return {"project": project.to_dict(include_towers=True)}


@router.put(
    "/admin/projects/{project_id}/hierarchy",
    summary="Synchronise a project hierarchy",
    description=(
        "Send the full hierarchy with the `version` last read. Towers and units with ids are "
        "updated, without ids created, and missing ones deleted. Booked units cannot be removed "
        "or have their number, floor, area or price changed."
    ),
    responses=get_crud_error_responses()
)
async def sync_hierarchy(
    project_id: str,
    data: HierarchySync,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    """
    Raises:
        StaleVersionError: Version does not match the stored one (409)
        BookedUnitProtectedError: A booked unit would be deleted or altered (409)
    """
    project = await service.sync_hierarchy(project_id, data)
    return {"success": True, "project": project.to_dict(include_towers=True)}


@router.post("/admin/projects/{project_id}/towers", status_code=status.HTTP_201_CREATED, summary="Add a tower")
async def add_tower(
    project_id: str,
    data: TowerCreate,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    tower = await service.add_tower(project_id, data)
    return {"tower": tower.to_dict()}


@router.post("/admin/towers/{tower_id}/generate-units", summary="Generate units floor by floor")
async def generate_units(
    tower_id: str,
    data: GenerateUnitsRequest,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    created = await service.generate_units(tower_id, data)
    return {"success": True, "unitsCreated": created}


@router.patch("/admin/units/{unit_id}", summary="Update a unit", responses=get_crud_error_responses())
async def update_unit(
    unit_id: str,
    data: UnitUpdate,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    unit = await service.update_unit(unit_id, data)
    return {"unit": unit.to_dict()}


@router.delete("/admin/projects/{project_id}", summary="Delete a project and its hierarchy")
async def delete_project(
    project_id: str,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    await service.delete_project(project_id)
    return {"success": True, "message": "Project deleted"}


@router.patch("/admin/projects/{project_id}/status", summary="Change project status")
async def set_project_status(
    project_id: str,
    data: ProjectStatusUpdate,
    admin: User = Depends(get_current_admin_user),
    service: LiveGroupService = Depends(get_live_group_service)
) -> Dict[str, Any]:
    project = await service.set_status(project_id, data.status)
    return {"project": project.to_dict()}
