"""
Site visit booking repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.repositories.base import BaseRepository
from app.models.booking import Booking
from app.models.property import Property
from typing import List, Optional, Tuple
import uuid


class BookingRepository(BaseRepository[Booking]):

    def __init__(self, db: AsyncSession):
        super().__init__(Booking, db)

    async def get_user_bookings(self, user_id: uuid.UUID) -> List[Tuple[Booking, Optional[str]]]:
        """The user's bookings, newest first, each with the property's cover image."""
        result = await self.db.execute(
            select(Booking, Property.image_url)
            .outerjoin(Property, Property.id == Booking.property_id)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
        )
        return [(booking, image) for booking, image in result.all()]

    async def get_owned(self, booking_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking).where(Booking.id == booking_id, Booking.user_id == user_id)
        )
        return result.scalar_one_or_none()
