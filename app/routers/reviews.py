"""
Moderated property review endpoints.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status

from app.models.user import User
from app.services.review import MODERATION_MESSAGES, ReviewService
from app.schemas.review import PropertyReviewCreate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_current_admin_user, get_current_user, get_review_service
from app.schemas.error import get_common_error_responses


router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    dependencies=[Depends(rate_limit("mutation"))],
    responses=get_common_error_responses()
)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Submit a review for moderation")
async def create_review(
    data: PropertyReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
) -> Dict[str, Any]:
    review = await service.create_review(current_user, data)
    return {"success": True, "message": "Review submitted for approval", "review": review.to_dict()}


@router.get("/property/{property_id}", summary="Approved reviews of a property")
async def property_reviews(
    property_id: str,
    service: ReviewService = Depends(get_review_service)
) -> Dict[str, Any]:
    reviews = await service.approved_reviews(property_id)
    return {"reviews": [r.to_dict() for r in reviews]}


@router.get("/stats/{property_id}", summary="Rating averages and star breakdown")
async def review_stats(
    property_id: str,
    service: ReviewService = Depends(get_review_service)
) -> Dict[str, Any]:
    return await service.stats(property_id)


@router.get("/admin/pending", summary="Reviews awaiting moderation")
async def pending_reviews(
    admin: User = Depends(get_current_admin_user),
    service: ReviewService = Depends(get_review_service)
) -> Dict[str, Any]:
    reviews = await service.pending_reviews()
    return {"reviews": [r.to_dict() for r in reviews]}


@router.patch("/admin/{action}/{review_id}", summary="Approve or reject a review")
async def moderate_review(
    action: str,
    review_id: str,
    admin: User = Depends(get_current_admin_user),
    service: ReviewService = Depends(get_review_service)
) -> Dict[str, Any]:
    applied = await service.moderate(action, review_id)
    return {"success": True, "message": MODERATION_MESSAGES[applied]}
