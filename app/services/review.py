"""
Moderated property reviews.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.review import PropertyReview
from app.models.user import User
from app.repositories.property import PropertyRepository
from app.repositories.review import ReviewRepository
from app.schemas.review import PropertyReviewCreate
from app.services.property import parse_uuid
from app.utils.exceptions import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"
MODERATION_MESSAGES = {APPROVE: "Review approved", REJECT: "Review rejected"}


def _average(value: Any) -> float:
    return round(float(value), 1) if value is not None else 0.0


class ReviewService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.review_repo = ReviewRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def create_review(self, user: User, data: PropertyReviewCreate) -> PropertyReview:
        property_id = parse_uuid(data.property_id, "Property")
        if not await self.property_repo.exists(property_id):
            raise NotFoundError("Property", data.property_id)

        values = data.model_dump(exclude={"property_id"})
        values.update({"property_id": property_id, "user_id": user.id, "is_approved": False})
        try:
            review = await self.review_repo.create(values)
        except Exception as e:
            logger.error(f"Failed to save review by {user.email}: {e}")
            raise BadRequestError(f"Failed to submit review: {str(e)}")

        logger.info(f"Review {review.id} for property {property_id} awaiting approval")
        return review

    async def approved_reviews(self, property_id: Any) -> List[PropertyReview]:
        return await self.review_repo.get_approved(parse_uuid(property_id, "Property"))

    async def stats(self, property_id: Any) -> Dict[str, Any]:
        row = await self.review_repo.get_stats(parse_uuid(property_id, "Property"))
        return {
            "totalReviews": row["total"] or 0,
            "averageRating": _average(row["avg_overall"]),
            "averageConnectivity": _average(row["avg_connectivity"]),
            "averageLifestyle": _average(row["avg_lifestyle"]),
            "averageSafety": _average(row["avg_safety"]),
            "averageGreenArea": _average(row["avg_green_area"]),
            "ratingBreakdown": {str(n): int(row[f"star_{n}"] or 0) for n in range(5, 0, -1)},
        }

    async def pending_reviews(self) -> List[PropertyReview]:
        return await self.review_repo.get_pending()

    async def moderate(self, action: str, review_id: Any) -> str:
        """
        Approve or reject a pending review. Rejected reviews are deleted.

        Returns:
            The action applied

        Raises:
            BadRequestError: Unknown action
            NotFoundError: Unknown review
        """
        if action not in (APPROVE, REJECT):
            raise BadRequestError(f"Invalid action: {action}")

        review = await self.review_repo.get_by_id(parse_uuid(review_id, "Review"))
        if not review:
            raise NotFoundError("Review", str(review_id))

        if action == APPROVE:
            await self.review_repo.update(review, {"is_approved": True})
        else:
            await self.review_repo.delete(review.id)
        logger.info(f"{MODERATION_MESSAGES[action]}: {review_id}")
        return action
