"""
Site visit booking endpoints.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status

from app.models.user import User
from app.services.booking import BookingService
from app.schemas.booking import BookingCreate, BookingPaymentVerify
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_booking_service, get_current_user
from app.schemas.error import get_common_error_responses


router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Book a site visit",
    description="Previsit bookings also return a payment order for the visit fee"
)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Dict[str, Any]:
    booking, payment = await booking_service.create_booking(current_user, data)
    return {"success": True, "booking": booking.to_dict(), "payment": payment}


@router.post("/verify-payment", summary="Confirm a visit fee payment")
async def verify_payment(
    data: BookingPaymentVerify,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Dict[str, Any]:
    booking = await booking_service.verify_payment(current_user, data)
    return {"success": True, "message": "Payment verified", "booking": booking.to_dict()}


@router.get("/my-bookings", summary="Caller's bookings")
async def get_my_bookings(
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Dict[str, Any]:
    return {"bookings": await booking_service.get_user_bookings(current_user)}


@router.get("/{booking_id}", summary="Get one of the caller's bookings")
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service)
) -> Dict[str, Any]:
    booking = await booking_service.get_booking(current_user, booking_id)
    return {"booking": booking.to_dict()}
