"""
Property service for marketplace listings with credit-based posting.
Handles CRUD with ownership checks, the edit window, favorites and admin
listing management.
"""

from typing import Optional, List, Dict, Any, Tuple
from datetime import timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.repositories.property import (
    PropertyRepository,
    PropertySearchFilters,
    AdminPropertyFilters,
    FavoriteRepository,
)
from app.repositories.subscription import SubscriptionUsageRepository
from app.repositories.user import UserRepository
from app.models.property import Property, PropertySource, PropertyStatus, CreditType
from app.models.user import User
from app.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    AdminPropertyCreate,
    AdminPropertyUpdate,
    AdminPropertyStatusUpdate,
)
from app.utils.exceptions import (
    APIException,
    NotFoundError,
    ForbiddenError,
    BadRequestError,
    InsufficientCreditsError,
)
from app.utils.timeutils import as_utc, utc_now
import uuid
import logging

logger = logging.getLogger(__name__)

_SOURCE_USER_TYPES = {
    PropertySource.INDIVIDUAL.value: "individual",
    PropertySource.DEVELOPER.value: "developer",
}


def parse_uuid(value: Any, resource: str) -> uuid.UUID:
    """Path ids that are not UUIDs cannot exist, so they are reported as 404."""
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(resource, str(value))


class PropertyService:
    """
    Marketplace listings.

    Posting spends one credit of the chosen type. The user row is locked for
    the duration of the transaction so concurrent posts cannot overspend.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.usage_repo = SubscriptionUsageRepository(db_session)

    async def search_properties(self, filters: PropertySearchFilters) -> Tuple[List[Property], int]:
        try:
            return await self.property_repo.search_properties(filters)
        except Exception as e:
            logger.error(f"Property search failed: {e}")
            raise BadRequestError(f"Failed to search properties: {str(e)}")

    async def get_property(self, property_id: Any) -> Property:
        property_obj = await self.property_repo.get_by_id(parse_uuid(property_id, "Property"))
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Tuple[Property, Dict[str, Any]]:
        """
        Create a listing and spend one posting credit.

        Returns:
            Tuple of (created property, {"type": credit type, "remaining": balance})

        Raises:
            InsufficientCreditsError: If the chosen credit balance is exhausted
        """
        credit_type = CreditType(property_data.credit_used)
        balance_field = f"{credit_type.value}_credits"

        try:
            user = await self.user_repo.get_for_update(current_user.id)
            if user is None:
                raise NotFoundError("User", str(current_user.id))

            balance = getattr(user, balance_field) or 0
            if balance <= 0:
                raise InsufficientCreditsError(credit_type.value)

            columns = property_data.to_columns()
            columns.update({
                "user_id": user.id,
                "user_type": property_data.user_type or user.user_type.value,
                "property_source": (
                    PropertySource.DEVELOPER.value if credit_type == CreditType.DEVELOPER
                    else PropertySource.INDIVIDUAL.value
                ),
                "credit_used": credit_type.value,
                "status": PropertyStatus.ACTIVE.value,
            })
            property_obj = await self.property_repo.create(columns, commit=False)

            setattr(user, balance_field, balance - 1)
            await self.usage_repo.create(
                {
                    "user_id": user.id,
                    "action": "property_posted",
                    "details": {
                        "property_id": str(property_obj.id),
                        "title": property_obj.title,
                        "credit_type": credit_type.value,
                    },
                },
                commit=False,
            )

            await self.db.commit()
            await self.db.refresh(property_obj)
            remaining = getattr(user, balance_field)
            logger.info(
                f"Property created by {user.email}: {property_obj.title} "
                f"(ID: {property_obj.id}, {credit_type.value} credits left: {remaining})"
            )
            return property_obj, {"type": credit_type.value, "remaining": remaining}

        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create property for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create property: {str(e)}")

    async def _get_owned(self, property_id: Any, current_user: User) -> Property:
        property_obj = await self.property_repo.get_by_id(parse_uuid(property_id, "Property"))
        if not property_obj or property_obj.user_id != current_user.id:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def update_property(self, property_id: Any, property_data: PropertyUpdate, current_user: User) -> Property:
        """
        Partial update by the owner, allowed only inside the edit window after creation.

        Raises:
            NotFoundError: Missing or not owned by the caller
            ForbiddenError: Edit window has passed
        """
        try:
            property_obj = await self._get_owned(property_id, current_user)

            window = timedelta(days=settings.property_edit_window_days)
            if utc_now() - as_utc(property_obj.created_at) > window:
                raise ForbiddenError(
                    f"Properties can only be edited within {settings.property_edit_window_days} days of posting"
                )

            changes = property_data.to_columns(exclude_unset=True)
            if not changes:
                return property_obj

            updated = await self.property_repo.update(property_obj, changes)
            logger.info(f"Property updated by {current_user.email}: {updated.id} {sorted(changes)}")
            return updated

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to update property {property_id}: {e}")
            raise BadRequestError(f"Failed to update property: {str(e)}")

    async def delete_property(self, property_id: Any, current_user: User) -> None:
        property_obj = await self._get_owned(property_id, current_user)
        await self.property_repo.delete(property_obj.id)
        logger.info(f"Property deleted by {current_user.email}: {property_obj.id}")

    async def get_user_properties(self, current_user: User) -> List[Property]:
        return await self.property_repo.get_by_owner(current_user.id)

    # Admin listing management

    async def admin_search(self, filters: AdminPropertyFilters) -> Tuple[List[Property], int]:
        return await self.property_repo.admin_search(filters)

    async def admin_stats(self) -> Dict[str, int]:
        by_status = await self.property_repo.get_status_counts()
        return {
            "total": sum(by_status.values()),
            "active": by_status.get(PropertyStatus.ACTIVE.value, 0),
            "pending": by_status.get(PropertyStatus.PENDING.value, 0),
            "featured": await self.property_repo.count_featured(),
        }

    async def admin_create(self, data: AdminPropertyCreate, admin: User) -> Property:
        """Create a listing on behalf of the platform; no credit is spent."""
        columns = data.to_columns()
        source = PropertySource(data.property_source).value
        columns.update({
            "user_id": admin.id,
            "property_source": source,
            "user_type": _SOURCE_USER_TYPES.get(source, "admin"),
            "status": PropertyStatus(data.status).value,
        })
        try:
            property_obj = await self.property_repo.create(columns)
        except Exception as e:
            logger.error(f"Admin property creation failed: {e}")
            raise BadRequestError(f"Failed to create property: {str(e)}")
        logger.info(f"Admin {admin.email} created property {property_obj.id} ({source})")
        return property_obj

    async def admin_update(self, property_id: Any, data: AdminPropertyUpdate) -> Property:
        property_obj = await self.get_property(property_id)
        changes = data.to_columns(exclude_unset=True)
        if changes.get("property_source"):
            source = PropertySource(changes["property_source"]).value
            changes["property_source"] = source
            changes["user_type"] = _SOURCE_USER_TYPES.get(source, "admin")
        if changes.get("status"):
            changes["status"] = PropertyStatus(changes["status"]).value
        if not changes:
            return property_obj
        return await self.property_repo.update(property_obj, changes)

    async def admin_set_status(self, property_id: Any, data: AdminPropertyStatusUpdate) -> Property:
        property_obj = await self.get_property(property_id)
        changes: Dict[str, Any] = {}
        if data.status is not None:
            changes["status"] = PropertyStatus(data.status).value
        if data.is_featured is not None:
            changes["is_featured"] = data.is_featured
        if not changes:
            raise BadRequestError("Provide status or is_featured")
        updated = await self.property_repo.update(property_obj, changes)
        logger.info(f"Property {updated.id} moderated: {changes}")
        return updated

    async def admin_delete(self, property_id: Any) -> None:
        property_obj = await self.get_property(property_id)
        await self.property_repo.delete(property_obj.id)
        logger.info(f"Property {property_obj.id} deleted by admin")


class FavoriteService:
    """Marketplace favorites."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.favorite_repo = FavoriteRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def toggle(self, user: User, property_id: Optional[str]) -> bool:
        """Add or remove a favorite; returns the new state."""
        if not property_id:
            raise BadRequestError("propertyId is required")
        pid = parse_uuid(property_id, "Property")

        if await self.favorite_repo.find(user.id, pid):
            await self.favorite_repo.remove(user.id, pid)
            return False

        if not await self.property_repo.exists(pid):
            raise NotFoundError("Property", property_id)
        await self.favorite_repo.create({"user_id": user.id, "property_id": pid})
        return True

    async def favorite_ids(self, user: User) -> List[str]:
        return [str(pid) for pid in await self.favorite_repo.get_property_ids(user.id)]

    async def favorite_properties(self, user: User) -> List[Property]:
        return await self.favorite_repo.get_properties(user.id)
