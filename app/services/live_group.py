"""
Live group (collective purchase) service.

Unit workflow:
    available -> locked (10 minute hold while the buyer pays) -> booked

Locks and bookings run inside one transaction holding the unit row lock.
Admins edit a project's towers and units either piecemeal or through a bulk
sync guarded by the project version: the sync only applies if the version the
editor read is still current, and it never deletes or reprices booked units.
"""

import asyncio
import logging
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.live_group import (
    LiveGroupProject,
    LiveGroupTower,
    LiveGroupUnit,
    ProjectStatus,
    UnitStatus,
)
from app.models.user import User
from app.repositories.live_group import LiveGroupRepository
from app.schemas.live_group import (
    BookingOrderRequest,
    GenerateUnitsRequest,
    HierarchyCreate,
    HierarchySync,
    PaymentData,
    ProjectCreate,
    TowerCreate,
    TowerInput,
    UnitInput,
    UnitUpdate,
)
from app.services.property import parse_uuid
from app.utils import email as mailer
from app.utils import payments
from app.utils.email_templates import admin_group_booking_email, group_booking_email
from app.utils.exceptions import (
    APIException,
    BadRequestError,
    BookedUnitProtectedError,
    NotFoundError,
    PaymentVerificationError,
    StaleVersionError,
    UnitUnavailableError,
)
from app.utils.timeutils import as_utc, utc_now

logger = logging.getLogger(__name__)

UNIT_LETTERS = "ABCDEFGH"

# Fields of a booked unit that may not change.
PROTECTED_UNIT_FIELDS = ("floor_number", "unit_number", "area", "price")

_HIERARCHY_MODELS = (LiveGroupProject, LiveGroupTower, LiveGroupUnit)


def unit_label(floor_number: int, letter: str) -> str:
    """B-A for the basement, GF-A for the ground floor, 3A for floor 3."""
    if floor_number == -1:
        return f"B-{letter}"
    if floor_number == 0:
        return f"GF-{letter}"
    return f"{floor_number}{letter}"


def _same_value(current: Any, new: Any) -> bool:
    if current is None or new is None:
        return current is None and new is None
    if isinstance(current, (Decimal, float, int)) and not isinstance(current, bool):
        return Decimal(str(current)) == Decimal(str(new))
    return current == new


def _lock_expired(unit: LiveGroupUnit) -> bool:
    locked_at = as_utc(unit.locked_at)
    if locked_at is None:
        return True
    return utc_now() - locked_at >= timedelta(minutes=settings.unit_lock_minutes)


class LiveGroupService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.repo = LiveGroupRepository(db_session)

    # Public reads

    async def list_projects(self) -> List[Dict[str, Any]]:
        projects = []
        for project, tower_count in await self.repo.list_open_projects():
            item = project.to_dict()
            item["tower_count"] = tower_count
            projects.append(item)
        return projects

    async def get_full(self, project_id: Any) -> LiveGroupProject:
        project = await self.repo.get_full(parse_uuid(project_id, "Project"))
        if not project:
            raise NotFoundError("Project", str(project_id))
        return project

    async def _get_unit(self, unit_id: Any, for_update: bool = False) -> LiveGroupUnit:
        uid = parse_uuid(unit_id, "Unit")
        unit = await (self.repo.get_unit_for_update(uid) if for_update else self.repo.get_unit(uid))
        if not unit:
            raise NotFoundError("Unit", str(unit_id))
        return unit

    # Buyer workflow

    def _ensure_bookable(self, unit: LiveGroupUnit, user: User) -> None:
        if unit.status == UnitStatus.BOOKED.value:
            raise UnitUnavailableError("Unit is already booked")
        if (
            unit.status == UnitStatus.LOCKED.value
            and unit.locked_by != user.id
            and not _lock_expired(unit)
        ):
            raise UnitUnavailableError("Unit is currently locked by another user")

    async def lock_unit(self, unit_id: Any, user: User) -> LiveGroupUnit:
        """
        Hold a unit for the caller while they pay.

        Raises:
            UnitUnavailableError: Booked, or held by someone else within the lock window
        """
        try:
            unit = await self._get_unit(unit_id, for_update=True)
            self._ensure_bookable(unit, user)

            unit.status = UnitStatus.LOCKED.value
            unit.locked_at = utc_now()
            unit.locked_by = user.id
            await self.db.commit()
            logger.info(f"Unit {unit.id} locked by {user.email}")
            return unit
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to lock unit {unit_id}: {e}")
            raise BadRequestError(f"Failed to lock unit: {str(e)}")

    async def create_booking_order(self, user: User, data: BookingOrderRequest) -> Dict[str, Any]:
        unit = await self._get_unit(data.unit_id)
        if unit.status == UnitStatus.BOOKED.value:
            raise UnitUnavailableError("Unit is already booked")

        order = await payments.create_order(
            data.amount,
            receipt=f"unit_{unit.id.hex[:16]}_{int(utc_now().timestamp())}",
            notes={"unit_id": str(unit.id), "user_id": str(user.id)},
        )
        logger.info(f"Booking order {order['id']} for unit {unit.id} by {user.email}")
        return {
            "orderId": order["id"],
            "amount": order.get("amount"),
            "currency": order.get("currency", "INR"),
            "keyId": settings.razorpay_key_id,
        }

    async def book_unit(self, unit_id: Any, user: User, payment: PaymentData) -> LiveGroupUnit:
        """
        Confirm a paid booking. The payment signature is checked before the
        unit row is locked; confirmation mails are sent in the background.
        """
        if not payments.verify_signature(
            payment.razorpay_order_id, payment.razorpay_payment_id, payment.razorpay_signature
        ):
            raise PaymentVerificationError()

        try:
            unit = await self._get_unit(unit_id, for_update=True)
            self._ensure_bookable(unit, user)

            unit.status = UnitStatus.BOOKED.value
            unit.booked_by = user.id
            unit.booked_at = utc_now()
            unit.locked_at = None
            unit.locked_by = None

            project = await self.repo.get_project_for_unit(unit)
            tower = await self.repo.get_tower(unit.tower_id)
            await self.db.commit()
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to book unit {unit_id}: {e}")
            raise BadRequestError(f"Failed to book unit: {str(e)}")

        logger.info(f"Unit {unit.id} booked by {user.email} ({payment.razorpay_payment_id})")
        self._send_booking_mails(unit, tower, project, user, payment)
        return unit

    def _send_booking_mails(self, unit: LiveGroupUnit, tower: Optional[LiveGroupTower],
                            project: Optional[LiveGroupProject], user: User, payment: PaymentData) -> None:
        details = {
            "user_name": user.name,
            "user_email": user.email,
            "user_phone": user.phone,
            "project_title": project.title if project else None,
            "developer": project.developer if project else None,
            "location": project.location if project else None,
            "unit_label": f"{tower.tower_name} - {unit.unit_number}" if tower else unit.unit_number,
            "amount": unit.price,
            "booked_at": unit.booked_at,
            "payment_id": payment.razorpay_payment_id,
        }
        subject, html = group_booking_email(details)
        mailer.send_in_background(mailer.send_smtp_email(user.email, subject, html), f"group booking mail {unit.id}")
        subject, html = admin_group_booking_email(details)
        mailer.send_in_background(mailer.send_admin_email(subject, html), f"admin group booking mail {unit.id}")

    # Admin: projects

    async def create_project(self, data: ProjectCreate, admin: User) -> LiveGroupProject:
        values = data.model_dump(exclude_none=True)
        values.update({"status": ProjectStatus.LIVE.value, "created_by": admin.id})
        if values.get("images") and not values.get("image"):
            values["image"] = values["images"][0]
        try:
            project = await self.repo.create(values)
        except Exception as e:
            logger.error(f"Failed to create live group project: {e}")
            raise BadRequestError(f"Failed to create project: {str(e)}")
        logger.info(f"Live group project created by {admin.email}: {project.title} ({project.id})")
        return project

    async def create_hierarchy(self, data: HierarchyCreate, admin: User) -> LiveGroupProject:
        """Create a project together with its towers and units in one transaction."""
        values = data.model_dump(exclude_none=True, exclude={"towers"})
        values.update({"status": ProjectStatus.LIVE.value, "created_by": admin.id})
        if values.get("images") and not values.get("image"):
            values["image"] = values["images"][0]

        try:
            project = LiveGroupProject(id=uuid.uuid4(), **values)
            self.db.add(project)
            total = 0
            for position, tower_input in enumerate(data.towers):
                tower = self._new_tower(project.id, tower_input, position)
                for unit_input in tower_input.units:
                    self.db.add(self._new_unit(tower.id, unit_input))
                    total += 1
            project.total_slots = total
            await self.db.commit()
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create project hierarchy: {e}")
            raise BadRequestError(f"Failed to create project: {str(e)}")

        logger.info(f"Live group hierarchy created by {admin.email}: {project.id} ({total} units)")
        return await self._reload(project.id)

    def _new_tower(self, project_id: uuid.UUID, tower_input: TowerInput, position: int) -> LiveGroupTower:
        tower = LiveGroupTower(
            id=uuid.uuid4(),
            project_id=project_id,
            tower_name=tower_input.tower_name,
            total_floors=tower_input.total_floors,
            position=position,
        )
        self.db.add(tower)
        return tower

    @staticmethod
    def _new_unit(tower_id: uuid.UUID, unit_input: UnitInput) -> LiveGroupUnit:
        values = unit_input.model_dump(exclude={"id"})
        return LiveGroupUnit(tower_id=tower_id, status=UnitStatus.AVAILABLE.value, **values)

    async def _reload(self, project_id: uuid.UUID) -> LiveGroupProject:
        """Drop cached hierarchy rows and load the project fresh."""
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, _HIERARCHY_MODELS):
                self.db.expire(obj)
        return await self.get_full(project_id)

    async def sync_hierarchy(self, project_id: Any, data: HierarchySync) -> LiveGroupProject:
        """
        Replace a project's towers and units with the submitted state.

        Towers and units with an id are updated, ones without are created and
        existing ones missing from the payload are deleted. Either everything
        applies or nothing does.

        Raises:
            StaleVersionError: The project changed since `data.version` was read
            BookedUnitProtectedError: A booked unit would be deleted or changed
            BadRequestError: An id does not belong to this project
        """
        project = await self.get_full(project_id)
        if project.version != data.version:
            raise StaleVersionError("Project", data.version, project.version)

        existing_towers = {tower.id: tower for tower in project.towers}
        existing_units = {unit.id: unit for tower in project.towers for unit in tower.units}

        kept_tower_ids: Set[uuid.UUID] = set()
        unit_changes: Dict[uuid.UUID, Dict[str, Any]] = {}
        for tower_input in data.towers:
            if tower_input.id:
                tower_id = self._parse_member_id(tower_input.id, existing_towers, "Tower")
                kept_tower_ids.add(tower_id)
            for unit_input in tower_input.units:
                if not unit_input.id:
                    continue
                unit_id = self._parse_member_id(unit_input.id, existing_units, "Unit")
                unit_changes[unit_id] = unit_input.model_dump(exclude={"id"}, exclude_unset=True)
        kept_unit_ids = set(unit_changes)

        try:
            # Bookings do not bump the version, so statuses are re-read under row locks.
            for unit in await self.repo.lock_project_units(project.id):
                if unit.id not in existing_units or unit.status != UnitStatus.BOOKED.value:
                    continue
                if unit.id in unit_changes:
                    self._check_booked_unchanged(unit, unit_changes[unit.id])
                else:
                    raise BookedUnitProtectedError(unit.unit_number, "delete")

            if not await self.repo.compare_and_bump_version(project.id, data.version):
                current = await self.repo.get_version(project.id)
                raise StaleVersionError("Project", data.version, current)

            for field, value in data.model_dump(exclude_unset=True, exclude={"version", "towers"}).items():
                if value is not None:
                    setattr(project, field, value)

            for position, tower_input in enumerate(data.towers):
                if tower_input.id:
                    tower = existing_towers[uuid.UUID(tower_input.id)]
                    tower.tower_name = tower_input.tower_name
                    tower.total_floors = tower_input.total_floors
                    tower.position = position
                else:
                    tower = self._new_tower(project.id, tower_input, position)

                for unit_input in tower_input.units:
                    if unit_input.id:
                        unit = existing_units[uuid.UUID(unit_input.id)]
                        unit.tower_id = tower.id
                        for field, value in unit_input.model_dump(exclude={"id"}, exclude_unset=True).items():
                            setattr(unit, field, value)
                    else:
                        self.db.add(self._new_unit(tower.id, unit_input))
            await self.db.flush()

            # Kept units were moved off removed towers by the flush above.
            removed_units = [uid for uid in existing_units if uid not in kept_unit_ids]
            removed_towers = [tid for tid in existing_towers if tid not in kept_tower_ids]
            if removed_units:
                await self.db.execute(delete(LiveGroupUnit).where(LiveGroupUnit.id.in_(removed_units)))
            if removed_towers:
                await self.db.execute(delete(LiveGroupTower).where(LiveGroupTower.id.in_(removed_towers)))

            total = await self.repo.recompute_total_slots(project.id)
            await self.db.commit()
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Hierarchy sync failed for project {project_id}: {e}")
            raise BadRequestError(f"Failed to sync hierarchy: {str(e)}")

        logger.info(
            f"Hierarchy synced for project {project.id}: version {data.version + 1}, {total} units, "
            f"{len(removed_towers)} towers and {len(removed_units)} units removed"
        )
        return await self._reload(project.id)

    @staticmethod
    def _parse_member_id(raw_id: str, members: Dict[uuid.UUID, Any], kind: str) -> uuid.UUID:
        try:
            member_id = uuid.UUID(str(raw_id))
        except ValueError:
            raise BadRequestError(f"{kind} {raw_id} does not belong to this project")
        if member_id not in members:
            raise BadRequestError(f"{kind} {raw_id} does not belong to this project")
        return member_id

    @staticmethod
    def _check_booked_unchanged(unit: LiveGroupUnit, changes: Dict[str, Any]) -> None:
        if unit.status != UnitStatus.BOOKED.value:
            return
        for field in PROTECTED_UNIT_FIELDS:
            if field in changes and not _same_value(getattr(unit, field), changes[field]):
                raise BookedUnitProtectedError(unit.unit_number, f"change {field.replace('_', ' ')} of")

    # Admin: towers and units

    async def add_tower(self, project_id: Any, data: TowerCreate) -> LiveGroupTower:
        project = await self.get_full(project_id)
        position = await self.repo.next_tower_position(project.id)
        try:
            tower = LiveGroupTower(
                project_id=project.id,
                tower_name=data.tower_name,
                total_floors=data.total_floors,
                position=position,
            )
            self.db.add(tower)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to add tower to project {project.id}: {e}")
            raise BadRequestError(f"Failed to add tower: {str(e)}")
        logger.info(f"Tower {tower.tower_name} added to project {project.id}")
        return tower

    async def generate_units(self, tower_id: Any, data: GenerateUnitsRequest) -> int:
        """
        Create `units_per_floor` units on every floor of a tower, labelled A-H.
        Labels that already exist on the tower are skipped.

        Returns:
            Number of units created
        """
        tower = await self.repo.get_tower(parse_uuid(tower_id, "Tower"))
        if not tower:
            raise NotFoundError("Tower", str(tower_id))

        floors: List[int] = []
        if data.has_basement:
            floors.append(-1)
        if data.has_ground_floor:
            floors.append(0)
        floors.extend(range(1, tower.total_floors + 1))

        existing = {(unit.floor_number, unit.unit_number) for unit in tower.units}
        try:
            created = 0
            for floor in floors:
                for letter in UNIT_LETTERS[:data.units_per_floor]:
                    label = unit_label(floor, letter)
                    if (floor, label) in existing:
                        continue
                    self.db.add(LiveGroupUnit(
                        tower_id=tower.id,
                        floor_number=floor,
                        unit_number=label,
                        unit_type=data.unit_type,
                        area=data.area_per_unit,
                        price=data.price_per_unit,
                        status=UnitStatus.AVAILABLE.value,
                    ))
                    created += 1
            await self.db.flush()
            await self.repo.recompute_total_slots(tower.project_id)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Unit generation failed for tower {tower.id}: {e}")
            raise BadRequestError(f"Failed to generate units: {str(e)}")

        logger.info(f"Generated {created} units for tower {tower.id}")
        return created

    async def update_unit(self, unit_id: Any, data: UnitUpdate) -> LiveGroupUnit:
        try:
            unit = await self._get_unit(unit_id, for_update=True)
            changes = data.model_dump(exclude_unset=True)
            self._check_booked_unchanged(unit, changes)
            for field, value in changes.items():
                setattr(unit, field, value)
            await self.db.commit()
            await self.db.refresh(unit)
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update unit {unit_id}: {e}")
            raise BadRequestError(f"Failed to update unit: {str(e)}")
        logger.info(f"Unit {unit.id} updated: {sorted(changes)}")
        return unit

    async def delete_project(self, project_id: Any) -> None:
        project = await self.get_full(project_id)
        await self.repo.delete(project.id)
        logger.info(f"Live group project {project.id} deleted")

    async def set_status(self, project_id: Any, status: ProjectStatus) -> LiveGroupProject:
        project = await self.get_full(project_id)
        project = await self.repo.update(project, {"status": ProjectStatus(status).value})
        logger.info(f"Live group project {project.id} status set to {project.status}")
        return project


async def release_expired_locks(session: AsyncSession) -> int:
    cutoff = utc_now() - timedelta(minutes=settings.unit_lock_minutes)
    released = await LiveGroupRepository(session).release_expired_locks(cutoff)
    if released:
        logger.info(f"Released {released} expired unit locks")
    return released


async def run_lock_sweeper(session_factory: Callable[[], AsyncSession], interval: Optional[float] = None) -> None:
    """Release expired unit locks forever; cancelled by the application lifespan."""
    interval = interval or settings.lock_sweep_interval_seconds
    logger.info(f"Unit lock sweeper started (every {interval}s)")
    while True:
        try:
            async with session_factory() as session:
                await release_expired_locks(session)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Unit lock sweep failed: {e}")
        await asyncio.sleep(interval)
