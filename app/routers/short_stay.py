"""
Short-stay rental endpoints: listings, favorites, reservations, host calendar and analytics.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from app.models.user import User
from app.repositories.short_stay import ShortStaySearchFilters
from app.services.short_stay import ShortStayService
from app.schemas.property import FavoriteToggleRequest
from app.schemas.short_stay import CalendarUpdate, ReserveRequest, ShortStayUpdate, VerifyBookingRequest
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_optional_current_user, get_short_stay_service
from app.schemas.error import get_common_error_responses, get_crud_error_responses


router = APIRouter(
    prefix="/short-stay",
    tags=["Short Stay"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="List a property for short stays",
    description="Multipart form. Structured fields are JSON strings; the first image becomes the cover."
)
async def create_listing(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    pricing: Optional[str] = Form(None),
    rules: Optional[str] = Form(None),
    policies: Optional[str] = Form(None),
    amenities: Optional[str] = Form(None),
    specific_details: Optional[str] = Form(None),
    images: List[UploadFile] = File(default=[]),
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    form = {
        "title": title,
        "description": description,
        "category": category,
        "location": location,
        "pricing": pricing,
        "rules": rules,
        "policies": policies,
        "amenities": amenities,
        "specific_details": specific_details,
    }
    listing = await service.create_listing(current_user, form, images)
    return {"success": True, "property": listing.to_dict()}


@router.get("", summary="Search short-stay listings")
async def search_listings(
    type: Optional[str] = Query(None, description="Listing category"),
    location: Optional[str] = Query(None, description="Matches city, state or address"),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    guests: Optional[int] = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Optional[User] = Depends(get_optional_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    filters = ShortStaySearchFilters(
        type=type,
        location=location,
        min_price=min_price,
        max_price=max_price,
        guests=guests,
        limit=limit,
        offset=offset
    )
    properties = await service.search(filters, current_user)
    return {"properties": properties, "count": len(properties)}


@router.get("/user/my-listings", summary="Caller's listings")
async def my_listings(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return {"properties": [p.to_dict() for p in await service.my_listings(current_user)]}


# Favorites

@router.post("/favorites/toggle", summary="Add or remove a favorite")
async def toggle_favorite(
    data: FavoriteToggleRequest,
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    is_favorite = await service.toggle_favorite(current_user, data.property_id)
    return {"success": True, "isFavorite": is_favorite}


@router.get("/user/favorites", summary="Favorited listings")
async def get_favorites(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return {"properties": [p.to_dict() for p in await service.favorites(current_user)]}


# Reservations

@router.post(
    "/reserve",
    status_code=status.HTTP_201_CREATED,
    summary="Reserve a stay",
    responses=get_crud_error_responses()
)
async def reserve(
    data: ReserveRequest,
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    """
    Raises:
        ConflictError: Dates overlap an existing stay or a blocked night (409)
    """
    reservation = await service.reserve(current_user, data)
    return {"success": True, "reservation": reservation.to_dict(include_property=True)}


@router.get("/reservations/host", summary="Reservations on the caller's listings")
async def host_reservations(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return {"reservations": await service.host_reservations(current_user)}


@router.get("/reservations/traveler", summary="Caller's own trips")
async def traveler_reservations(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return {"reservations": await service.traveler_reservations(current_user)}


@router.post("/host/verify-booking", summary="Check a guest's booking code at arrival")
async def verify_booking(
    data: VerifyBookingRequest,
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    reservation = await service.verify_booking(current_user, data)
    return {"success": True, "message": "Booking verified", "reservation": reservation.to_dict()}


@router.get("/availability/{property_id}", summary="Booked and blocked dates")
async def availability(
    property_id: str,
    check_in: Optional[date] = Query(None, alias="checkIn"),
    check_out: Optional[date] = Query(None, alias="checkOut"),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return await service.availability(property_id, check_in, check_out)


# Host calendar

@router.get("/calendar/{property_id}", summary="Host calendar for a listing")
async def get_calendar(
    property_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return await service.get_calendar(property_id, current_user, start, end)


@router.post("/calendar/update", summary="Set the price or block one night")
async def update_calendar(
    data: CalendarUpdate,
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    entry = await service.update_calendar(current_user, data)
    return {"success": True, "entry": entry}


# Host analytics

@router.get("/analytics/revenue-summary", summary="Revenue totals")
async def revenue_summary(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return await service.revenue_summary(current_user)


@router.get("/analytics/monthly-chart", summary="Revenue and bookings over the last 12 months")
async def monthly_chart(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return {"chart": await service.monthly_chart(current_user)}


@router.get("/analytics/property-performance", summary="Per-listing bookings, revenue and occupancy")
async def property_performance(
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    return {"properties": await service.property_performance(current_user)}


# Single listing

@router.get("/{property_id}", summary="Get listing with host details")
async def get_listing(
    property_id: str,
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    listing = await service.get_listing(property_id)
    return {"property": listing.to_dict(include_host=True)}


@router.put("/{property_id}", summary="Update own listing")
async def update_listing(
    property_id: str,
    data: ShortStayUpdate,
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    listing = await service.update_listing(property_id, current_user, data)
    return {"success": True, "property": listing.to_dict()}


@router.delete("/{property_id}", summary="Delete own listing")
async def delete_listing(
    property_id: str,
    current_user: User = Depends(get_current_user),
    service: ShortStayService = Depends(get_short_stay_service)
) -> Dict[str, Any]:
    await service.delete_listing(property_id, current_user)
    return {"success": True, "message": "Property deleted successfully"}
