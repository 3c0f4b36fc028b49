"""
Named wishlists of marketplace properties.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.property import Property
from app.models.user import User
from app.models.wishlist import Wishlist
from app.repositories.property import PropertyRepository
from app.repositories.wishlist import WishlistRepository
from app.services.property import parse_uuid
from app.utils.exceptions import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50


class WishlistService:

    def __init__(self, db_session: AsyncSession):
        self.repo = WishlistRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def list_wishlists(self, user: User) -> List[Dict[str, Any]]:
        wishlists = []
        for wishlist, count in await self.repo.get_with_counts(user.id):
            item = wishlist.to_dict()
            item["property_count"] = count
            wishlists.append(item)
        return wishlists

    async def create_wishlist(self, user: User, name: Optional[str]) -> Wishlist:
        name = (name or "").strip()
        if not name:
            raise BadRequestError("Wishlist name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise BadRequestError(f"Wishlist name must be {MAX_NAME_LENGTH} characters or less")

        wishlist = await self.repo.create({"user_id": user.id, "name": name})
        logger.info(f"Wishlist '{name}' created by {user.email}")
        return wishlist

    async def _get_owned(self, wishlist_id: Any, user: User) -> Wishlist:
        wishlist = await self.repo.get_owned(parse_uuid(wishlist_id, "Wishlist"), user.id)
        if not wishlist:
            raise NotFoundError("Wishlist", str(wishlist_id))
        return wishlist

    async def get_properties(self, wishlist_id: Any, user: User) -> List[Property]:
        wishlist = await self._get_owned(wishlist_id, user)
        return await self.repo.get_properties(wishlist.id)

    async def add_property(self, wishlist_id: Any, user: User, property_id: Optional[str]) -> None:
        wishlist = await self._get_owned(wishlist_id, user)
        if not property_id:
            raise BadRequestError("propertyId is required")

        target = parse_uuid(property_id, "Property")
        if not await self.property_repo.exists(target):
            raise NotFoundError("Property", property_id)
        if await self.repo.has_property(wishlist.id, target):
            raise BadRequestError("Property already in wishlist")

        await self.repo.add_property(wishlist.id, target)
        logger.info(f"Property {target} added to wishlist {wishlist.id}")

    async def remove_property(self, wishlist_id: Any, user: User, property_id: Any) -> None:
        wishlist = await self._get_owned(wishlist_id, user)
        await self.repo.remove_property(wishlist.id, parse_uuid(property_id, "Property"))

    async def delete_wishlist(self, wishlist_id: Any, user: User) -> None:
        wishlist = await self._get_owned(wishlist_id, user)
        await self.repo.delete_wishlist(wishlist.id)
        logger.info(f"Wishlist {wishlist.id} deleted by {user.email}")
