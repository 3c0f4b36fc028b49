"""
Wishlist repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete
from app.repositories.base import BaseRepository
from app.models.wishlist import Wishlist, WishlistProperty
from app.models.property import Property
from typing import List, Optional, Tuple
import uuid


class WishlistRepository(BaseRepository[Wishlist]):

    def __init__(self, db: AsyncSession):
        super().__init__(Wishlist, db)

    async def get_with_counts(self, user_id: uuid.UUID) -> List[Tuple[Wishlist, int]]:
        property_count = (
            select(func.count(WishlistProperty.id))
            .where(WishlistProperty.wishlist_id == Wishlist.id)
            .correlate(Wishlist)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(Wishlist, property_count)
            .where(Wishlist.user_id == user_id)
            .order_by(Wishlist.created_at.desc())
        )
        return [(wishlist, count or 0) for wishlist, count in result.all()]

    async def get_owned(self, wishlist_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Wishlist]:
        result = await self.db.execute(
            select(Wishlist).where(Wishlist.id == wishlist_id, Wishlist.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_properties(self, wishlist_id: uuid.UUID) -> List[Property]:
        result = await self.db.execute(
            select(Property)
            .join(WishlistProperty, WishlistProperty.property_id == Property.id)
            .where(WishlistProperty.wishlist_id == wishlist_id)
            .order_by(WishlistProperty.created_at.desc())
        )
        return list(result.scalars().all())

    async def has_property(self, wishlist_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(func.count(WishlistProperty.id)).where(
                WishlistProperty.wishlist_id == wishlist_id, WishlistProperty.property_id == property_id
            )
        )
        return (result.scalar() or 0) > 0

    async def add_property(self, wishlist_id: uuid.UUID, property_id: uuid.UUID) -> WishlistProperty:
        entry = WishlistProperty(wishlist_id=wishlist_id, property_id=property_id)
        self.db.add(entry)
        await self.db.commit()
        return entry

    async def remove_property(self, wishlist_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            delete(WishlistProperty).where(
                WishlistProperty.wishlist_id == wishlist_id, WishlistProperty.property_id == property_id
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    async def delete_wishlist(self, wishlist_id: uuid.UUID) -> None:
        await self.db.execute(delete(WishlistProperty).where(WishlistProperty.wishlist_id == wishlist_id))
        await self.db.execute(delete(Wishlist).where(Wishlist.id == wishlist_id))
        await self.db.commit()
