"""
Guest review endpoints for short stays.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status

from app.models.user import User
from app.services.short_stay_review import ShortStayReviewService
from app.schemas.short_stay import ShortStayReviewCreate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_user, get_short_stay_review_service
from app.schemas.error import get_crud_error_responses


router = APIRouter(
    prefix="/short-stay-reviews",
    tags=["Short Stay"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_crud_error_responses()
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed stay",
    description="Allowed from check-out until 7 days after, once per reservation"
)
async def create_review(
    data: ShortStayReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ShortStayReviewService = Depends(get_short_stay_review_service)
) -> Dict[str, Any]:
    review = await service.create_review(current_user, data)
    return {"success": True, "review": review}


@router.get("/property/{property_id}", summary="Public reviews of a listing")
async def property_reviews(
    property_id: str,
    service: ShortStayReviewService = Depends(get_short_stay_review_service)
) -> Dict[str, Any]:
    reviews = await service.reviews_for_property(property_id)
    return {"reviews": reviews, "count": len(reviews)}


@router.get("/check/{booking_id}", summary="Whether the caller reviewed a stay")
async def check_review(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: ShortStayReviewService = Depends(get_short_stay_review_service)
) -> Dict[str, bool]:
    return {"hasReview": await service.has_reviewed(current_user, booking_id)}
