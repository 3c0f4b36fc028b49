"""
Short-stay repositories: listing search, favorites, reservations, calendar and reviews.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete
from app.repositories.base import BaseRepository
from app.models.short_stay import (
    ShortStayProperty,
    ShortStayFavorite,
    ShortStayReservation,
    ShortStayCalendar,
    ShortStayReview,
    ReservationStatus,
)
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Set
import uuid


@dataclass
class ShortStaySearchFilters:
    type: Optional[str] = None
    location: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    guests: Optional[int] = None
    limit: int = 50
    offset: int = 0


class ShortStayRepository(BaseRepository[ShortStayProperty]):

    def __init__(self, db: AsyncSession):
        super().__init__(ShortStayProperty, db)

    async def search(self, filters: ShortStaySearchFilters) -> List[ShortStayProperty]:
        """Active listings matching the filters, newest first."""
        query = select(ShortStayProperty).where(ShortStayProperty.status == "active")

        if filters.type:
            query = query.where(ShortStayProperty.category == filters.type)
        if filters.location:
            term = f"%{filters.location}%"
            location = ShortStayProperty.location
            query = query.where(
                or_(
                    location["city"].as_string().ilike(term),
                    location["state"].as_string().ilike(term),
                    location["address"].as_string().ilike(term),
                )
            )
        per_night = ShortStayProperty.pricing["perNight"].as_float()
        if filters.min_price is not None:
            query = query.where(per_night >= float(filters.min_price))
        if filters.max_price is not None:
            query = query.where(per_night <= float(filters.max_price))
        if filters.guests is not None:
            query = query.where(ShortStayProperty.specific_details["maxGuests"].as_integer() >= filters.guests)

        query = query.order_by(ShortStayProperty.created_at.desc()).offset(filters.offset).limit(filters.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_host(self, user_id: uuid.UUID) -> List[ShortStayProperty]:
        result = await self.db.execute(
            select(ShortStayProperty)
            .where(ShortStayProperty.user_id == user_id)
            .order_by(ShortStayProperty.created_at.desc())
        )
        return list(result.scalars().all())

    async def count_by_host(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(ShortStayProperty.id)).where(ShortStayProperty.user_id == user_id)
        )
        return result.scalar() or 0


class ShortStayFavoriteRepository(BaseRepository[ShortStayFavorite]):

    def __init__(self, db: AsyncSession):
        super().__init__(ShortStayFavorite, db)

    async def find(self, user_id: uuid.UUID, property_id: uuid.UUID) -> Optional[ShortStayFavorite]:
        result = await self.db.execute(
            select(ShortStayFavorite).where(
                ShortStayFavorite.user_id == user_id, ShortStayFavorite.property_id == property_id
            )
        )
        return result.scalar_one_or_none()

    async def remove(self, user_id: uuid.UUID, property_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(ShortStayFavorite).where(
                ShortStayFavorite.user_id == user_id, ShortStayFavorite.property_id == property_id
            )
        )
        await self.db.commit()

    async def favorite_ids(self, user_id: uuid.UUID) -> Set[uuid.UUID]:
        result = await self.db.execute(
            select(ShortStayFavorite.property_id).where(ShortStayFavorite.user_id == user_id)
        )
        return set(result.scalars().all())

    async def get_properties(self, user_id: uuid.UUID) -> List[ShortStayProperty]:
        result = await self.db.execute(
            select(ShortStayProperty)
            .join(ShortStayFavorite, ShortStayFavorite.property_id == ShortStayProperty.id)
            .where(ShortStayFavorite.user_id == user_id)
            .order_by(ShortStayFavorite.created_at.desc())
        )
        return list(result.scalars().all())


class ReservationRepository(BaseRepository[ShortStayReservation]):

    def __init__(self, db: AsyncSession):
        super().__init__(ShortStayReservation, db)

    async def find_overlapping(self, property_id: uuid.UUID, check_in: date, check_out: date) -> List[ShortStayReservation]:
        """Non-cancelled reservations sharing at least one night with [check_in, check_out)."""
        result = await self.db.execute(
            select(ShortStayReservation).where(
                ShortStayReservation.property_id == property_id,
                ShortStayReservation.status != ReservationStatus.CANCELLED.value,
                ShortStayReservation.check_in < check_out,
                ShortStayReservation.check_out > check_in,
            )
        )
        return list(result.scalars().all())

    async def get_for_host(self, host_id: uuid.UUID) -> List[ShortStayReservation]:
        result = await self.db.execute(
            select(ShortStayReservation)
            .where(ShortStayReservation.host_id == host_id)
            .order_by(ShortStayReservation.check_in.desc())
        )
        return list(result.scalars().all())

    async def get_for_traveler(self, user_id: uuid.UUID) -> List[ShortStayReservation]:
        result = await self.db.execute(
            select(ShortStayReservation)
            .where(ShortStayReservation.user_id == user_id)
            .order_by(ShortStayReservation.check_in.desc())
        )
        return list(result.scalars().all())

    async def code_exists(self, code: str) -> bool:
        result = await self.db.execute(
            select(func.count(ShortStayReservation.id)).where(ShortStayReservation.booking_code == code)
        )
        return (result.scalar() or 0) > 0

    async def count_for_traveler(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(ShortStayReservation.id)).where(ShortStayReservation.user_id == user_id)
        )
        return result.scalar() or 0


class CalendarRepository(BaseRepository[ShortStayCalendar]):

    def __init__(self, db: AsyncSession):
        super().__init__(ShortStayCalendar, db)

    async def get_range(self, property_id: uuid.UUID, start: date, end: date) -> List[ShortStayCalendar]:
        """Entries for nights in [start, end)."""
        result = await self.db.execute(
            select(ShortStayCalendar)
            .where(
                ShortStayCalendar.property_id == property_id,
                ShortStayCalendar.night >= start,
                ShortStayCalendar.night < end,
            )
            .order_by(ShortStayCalendar.night)
        )
        return list(result.scalars().all())

    async def get_entry(self, property_id: uuid.UUID, night: date) -> Optional[ShortStayCalendar]:
        result = await self.db.execute(
            select(ShortStayCalendar).where(
                ShortStayCalendar.property_id == property_id, ShortStayCalendar.night == night
            )
        )
        return result.scalar_one_or_none()


class ShortStayReviewRepository(BaseRepository[ShortStayReview]):

    def __init__(self, db: AsyncSession):
        super().__init__(ShortStayReview, db)

    async def get_for_property(self, property_id: uuid.UUID) -> List[ShortStayReview]:
        result = await self.db.execute(
            select(ShortStayReview)
            .where(ShortStayReview.property_id == property_id)
            .order_by(ShortStayReview.created_at.desc())
        )
        return list(result.scalars().all())

    async def exists_for_reservation(self, reservation_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(func.count(ShortStayReview.id)).where(ShortStayReview.reservation_id == reservation_id)
        )
        return (result.scalar() or 0) > 0
