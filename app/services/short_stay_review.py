"""
Guest reviews for completed short stays.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.short_stay import ReservationRepository, ShortStayRepository, ShortStayReviewRepository
from app.schemas.short_stay import ShortStayReviewCreate
from app.services.property import parse_uuid
from app.utils.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from app.utils.timeutils import utc_now

logger = logging.getLogger(__name__)

REVIEW_WINDOW_DAYS = 7


class ShortStayReviewService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.review_repo = ShortStayReviewRepository(db_session)
        self.reservation_repo = ReservationRepository(db_session)
        self.property_repo = ShortStayRepository(db_session)

    async def create_review(self, user: User, data: ShortStayReviewCreate) -> Dict[str, Any]:
        """
        Review a stay. Allowed from check-out day until seven days after it,
        once per reservation, by the traveler who made it.

        Raises:
            NotFoundError: Unknown reservation
            ForbiddenError: Reservation belongs to someone else
            BadRequestError: Outside the review window
            ConflictError: Reservation already reviewed
        """
        reservation = await self.reservation_repo.get_by_id(parse_uuid(data.booking_id, "Booking"))
        if not reservation:
            raise NotFoundError("Booking", data.booking_id)
        if reservation.user_id != user.id:
            raise ForbiddenError("You can only review your own stays")

        today = utc_now().date()
        if today < reservation.check_out:
            raise BadRequestError("You can review this stay after check-out")
        if today > reservation.check_out + timedelta(days=REVIEW_WINDOW_DAYS):
            raise BadRequestError(f"Reviews must be submitted within {REVIEW_WINDOW_DAYS} days of check-out")
        if await self.review_repo.exists_for_reservation(reservation.id):
            raise ConflictError("You have already reviewed this stay")

        ratings = data.ratings
        try:
            review = await self.review_repo.create({
                "reservation_id": reservation.id,
                "property_id": reservation.property_id,
                "user_id": user.id,
                "cleanliness": ratings.cleanliness,
                "accuracy": ratings.accuracy,
                "check_in": ratings.check_in,
                "communication": ratings.communication,
                "location": ratings.location,
                "value": ratings.value,
                "overall_rating": data.overall_rating,
                "public_comment": data.public_comment,
                "private_feedback": data.private_feedback,
                "recommend": data.recommend,
                "safety_issues": data.safety_issues,
                "user_name": user.name,
                "user_photo": user.profile_photo,
            })
        except Exception as e:
            logger.error(f"Failed to save review for reservation {reservation.id}: {e}")
            raise BadRequestError(f"Failed to submit review: {str(e)}")

        logger.info(f"Review {review.id} submitted by {user.email} for {reservation.property_id}")
        return review.to_dict()

    async def reviews_for_property(self, property_id: Any) -> List[Dict[str, Any]]:
        listing_id = parse_uuid(property_id, "Property")
        if not await self.property_repo.exists(listing_id):
            raise NotFoundError("Property", str(property_id))
        return [review.to_dict() for review in await self.review_repo.get_for_property(listing_id)]

    async def has_reviewed(self, user: User, booking_id: Any) -> bool:
        reservation = await self.reservation_repo.get_by_id(parse_uuid(booking_id, "Booking"))
        if not reservation or reservation.user_id != user.id:
            return False
        return await self.review_repo.exists_for_reservation(reservation.id)
