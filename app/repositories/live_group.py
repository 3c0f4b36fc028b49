"""
Live group repository: project listing, hierarchy loading, unit row locks,
version compare-and-swap and the expired-lock sweep.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from app.repositories.base import BaseRepository
from app.models.live_group import LiveGroupProject, LiveGroupTower, LiveGroupUnit, ProjectStatus, UnitStatus
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class LiveGroupRepository(BaseRepository[LiveGroupProject]):
    """Projects and their towers and units."""

    def __init__(self, db: AsyncSession):
        super().__init__(LiveGroupProject, db)

    async def list_open_projects(self) -> List[Tuple[LiveGroupProject, int]]:
        """Projects that are not closed, newest first, with their tower counts."""
        tower_count = (
            select(func.count(LiveGroupTower.id))
            .where(LiveGroupTower.project_id == LiveGroupProject.id)
            .correlate(LiveGroupProject)
            .scalar_subquery()
        )
        result = await self.db.execute(
            select(LiveGroupProject, tower_count)
            .where(LiveGroupProject.status != ProjectStatus.CLOSED.value)
            .order_by(LiveGroupProject.created_at.desc())
        )
        return [(project, count or 0) for project, count in result.all()]

    async def get_full(self, project_id: uuid.UUID) -> Optional[LiveGroupProject]:
        """Project with towers and units freshly loaded from the database."""
        result = await self.db.execute(
            select(LiveGroupProject)
            .where(LiveGroupProject.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_tower(self, tower_id: uuid.UUID) -> Optional[LiveGroupTower]:
        result = await self.db.execute(
            select(LiveGroupTower)
            .where(LiveGroupTower.id == tower_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def next_tower_position(self, project_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(LiveGroupTower.position), -1)).where(LiveGroupTower.project_id == project_id)
        )
        return (result.scalar() or 0) + 1

    async def get_unit(self, unit_id: uuid.UUID) -> Optional[LiveGroupUnit]:
        result = await self.db.execute(select(LiveGroupUnit).where(LiveGroupUnit.id == unit_id))
        return result.scalar_one_or_none()

    async def get_unit_for_update(self, unit_id: uuid.UUID) -> Optional[LiveGroupUnit]:
        """Unit row locked until the current transaction ends."""
        result = await self.db.execute(
            select(LiveGroupUnit)
            .where(LiveGroupUnit.id == unit_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def lock_project_units(self, project_id: uuid.UUID) -> List[LiveGroupUnit]:
        """Every unit of the project, row-locked and refreshed until the transaction ends."""
        result = await self.db.execute(
            select(LiveGroupUnit)
            .join(LiveGroupTower, LiveGroupTower.id == LiveGroupUnit.tower_id)
            .where(LiveGroupTower.project_id == project_id)
            .with_for_update(of=LiveGroupUnit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_project_for_unit(self, unit: LiveGroupUnit) -> Optional[LiveGroupProject]:
        result = await self.db.execute(
            select(LiveGroupProject)
            .join(LiveGroupTower, LiveGroupTower.project_id == LiveGroupProject.id)
            .where(LiveGroupTower.id == unit.tower_id)
        )
        return result.scalar_one_or_none()

    async def compare_and_bump_version(self, project_id: uuid.UUID, expected_version: int) -> bool:
        """
        Atomically increment the project version if it still equals
        `expected_version`. Returns False when another writer got there first.
        """
        result = await self.db.execute(
            update(LiveGroupProject)
            .where(LiveGroupProject.id == project_id, LiveGroupProject.version == expected_version)
            .values(version=LiveGroupProject.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_version(self, project_id: uuid.UUID) -> Optional[int]:
        result = await self.db.execute(select(LiveGroupProject.version).where(LiveGroupProject.id == project_id))
        return result.scalar_one_or_none()

    async def recompute_total_slots(self, project_id: uuid.UUID) -> int:
        """Set total_slots to the number of units across the project's towers."""
        count_result = await self.db.execute(
            select(func.count(LiveGroupUnit.id))
            .join(LiveGroupTower, LiveGroupTower.id == LiveGroupUnit.tower_id)
            .where(LiveGroupTower.project_id == project_id)
        )
        total = count_result.scalar() or 0
        await self.db.execute(
            update(LiveGroupProject)
            .where(LiveGroupProject.id == project_id)
            .values(total_slots=total)
            .execution_options(synchronize_session=False)
        )
        return total

    async def booked_counts(self, project_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        """Booked units per project."""
        if not project_ids:
            return {}
        result = await self.db.execute(
            select(LiveGroupTower.project_id, func.count(LiveGroupUnit.id))
            .join(LiveGroupUnit, LiveGroupUnit.tower_id == LiveGroupTower.id)
            .where(
                LiveGroupTower.project_id.in_(project_ids),
                LiveGroupUnit.status == UnitStatus.BOOKED.value,
            )
            .group_by(LiveGroupTower.project_id)
        )
        return {project_id: count for project_id, count in result.all()}

    async def get_user_booked_units(
        self, user_id: uuid.UUID
    ) -> List[Tuple[LiveGroupUnit, LiveGroupTower, LiveGroupProject]]:
        """Units booked by the user with their tower and project, newest booking first."""
        result = await self.db.execute(
            select(LiveGroupUnit, LiveGroupTower, LiveGroupProject)
            .join(LiveGroupTower, LiveGroupTower.id == LiveGroupUnit.tower_id)
            .join(LiveGroupProject, LiveGroupProject.id == LiveGroupTower.project_id)
            .where(LiveGroupUnit.booked_by == user_id, LiveGroupUnit.status == UnitStatus.BOOKED.value)
            .order_by(LiveGroupUnit.booked_at.desc())
        )
        return [tuple(row) for row in result.all()]

    async def count_user_booked_units(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(LiveGroupUnit.id)).where(
                LiveGroupUnit.booked_by == user_id, LiveGroupUnit.status == UnitStatus.BOOKED.value
            )
        )
        return result.scalar() or 0

    async def release_expired_locks(self, cutoff: datetime) -> int:
        """Return units locked before `cutoff` to available. Commits."""
        try:
            result = await self.db.execute(
                update(LiveGroupUnit)
                .where(LiveGroupUnit.status == UnitStatus.LOCKED.value, LiveGroupUnit.locked_at < cutoff)
                .values(status=UnitStatus.AVAILABLE.value, locked_at=None, locked_by=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to release expired unit locks: {e}")
            raise
