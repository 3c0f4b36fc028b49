"""
Property repository with listing search, owner queries, admin statistics and favorites.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete
from app.repositories.base import BaseRepository
from app.models.property import Property, Favorite, PropertyStatus
from typing import Optional, List, Dict, Any, Tuple
from dataclasses import dataclass
import uuid
import logging

logger = logging.getLogger(__name__)


@dataclass
class PropertySearchFilters:
    """Public listing filters."""
    type: Optional[str] = None
    location: Optional[str] = None
    user_type: Optional[str] = None
    status: Optional[str] = PropertyStatus.ACTIVE.value
    limit: int = 50
    offset: int = 0


@dataclass
class AdminPropertyFilters:
    """Admin listing filters; `source` of "all" disables the source filter."""
    source: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    limit: int = 100
    offset: int = 0


class PropertyRepository(BaseRepository[Property]):
    """Repository for marketplace listings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    async def search_properties(self, filters: PropertySearchFilters) -> Tuple[List[Property], int]:
        """
        Search listings, newest first.

        Returns:
            Tuple of (page of properties, total matching count)
        """
        conditions = []
        if filters.type:
            conditions.append(Property.type == filters.type)
        if filters.location:
            conditions.append(Property.location.ilike(f"%{filters.location}%"))
        if filters.user_type:
            conditions.append(Property.user_type == filters.user_type)
        if filters.status:
            conditions.append(Property.status == filters.status)

        query = (
            select(Property)
            .where(*conditions)
            .order_by(Property.created_at.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self.db.execute(query)
        properties = list(result.scalars().all())

        count_result = await self.db.execute(select(func.count(Property.id)).where(*conditions))
        total = count_result.scalar() or 0

        logger.debug(f"Property search returned {len(properties)} of {total}")
        return properties, total

    async def get_by_owner(self, user_id: uuid.UUID) -> List[Property]:
        result = await self.db.execute(
            select(Property).where(Property.user_id == user_id).order_by(Property.created_at.desc())
        )
        return list(result.scalars().all())

    async def admin_search(self, filters: AdminPropertyFilters) -> Tuple[List[Property], int]:
        conditions = []
        if filters.source and filters.source != "all":
            conditions.append(Property.property_source == filters.source)
        if filters.status and filters.status != "all":
            conditions.append(Property.status == filters.status)
        if filters.search:
            term = f"%{filters.search}%"
            conditions.append(
                or_(
                    Property.title.ilike(term),
                    Property.location.ilike(term),
                    Property.company_name.ilike(term),
                )
            )

        result = await self.db.execute(
            select(Property)
            .where(*conditions)
            .order_by(Property.created_at.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        count_result = await self.db.execute(select(func.count(Property.id)).where(*conditions))
        return list(result.scalars().all()), count_result.scalar() or 0

    async def get_status_counts(self) -> Dict[str, int]:
        """Count listings grouped by status."""
        result = await self.db.execute(
            select(Property.status, func.count(Property.id)).group_by(Property.status)
        )
        return {status: count for status, count in result.all()}

    async def count_featured(self) -> int:
        result = await self.db.execute(select(func.count(Property.id)).where(Property.is_featured.is_(True)))
        return result.scalar() or 0

    async def get_recent(self, limit: int = 5) -> List[Property]:
        result = await self.db.execute(select(Property).order_by(Property.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    async def get_decided(self) -> List[Tuple[Any, Any]]:
        """(created_at, updated_at) of listings that were approved or rejected."""
        result = await self.db.execute(
            select(Property.created_at, Property.updated_at).where(
                Property.status.in_([PropertyStatus.ACTIVE.value, PropertyStatus.REJECTED.value])
            )
        )
        return list(result.all())

    async def get_many(self, ids: List[uuid.UUID]) -> List[Property]:
        if not ids:
            return []
        result = await self.db.execute(select(Property).where(Property.id.in_(ids)))
        by_id = {p.id: p for p in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]


class FavoriteRepository(BaseRepository[Favorite]):
    """Saved listings per user."""

    def __init__(self, db: AsyncSession):
        super().__init__(Favorite, db)

    async def find(self, user_id: uuid.UUID, property_id: uuid.UUID) -> Optional[Favorite]:
        result = await self.db.execute(
            select(Favorite).where(Favorite.user_id == user_id, Favorite.property_id == property_id)
        )
        return result.scalar_one_or_none()

    async def remove(self, user_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            delete(Favorite).where(Favorite.user_id == user_id, Favorite.property_id == property_id)
        )
        await self.db.commit()
        return result.rowcount > 0

    async def get_property_ids(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(Favorite.property_id).where(Favorite.user_id == user_id).order_by(Favorite.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_properties(self, user_id: uuid.UUID) -> List[Property]:
        result = await self.db.execute(
            select(Property)
            .join(Favorite, Favorite.property_id == Property.id)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc())
        )
        return list(result.scalars().all())
