"""
User repository for authentication, credit bookkeeping and account removal.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from app.repositories.base import BaseRepository
from app.models.user import User, UserRole, UserType, AccountDeletion
from app.models.property import Property, Favorite
from app.models.booking import Booking
from app.models.subscription import UserSubscription, SubscriptionUsage
from app.models.wishlist import Wishlist
from app.models.review import PropertyReview
from app.models.short_stay import ShortStayFavorite
from typing import Optional, List, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user accounts."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any], commit: bool = True) -> User:
        """
        Create a new user with email validation and password hashing.

        Args:
            user_data: Must include email, password and name. Optional: phone,
                role, user_type, is_verified

        Raises:
            ValueError: If validation fails or the email is taken
        """
        email = User.validate_email_format(user_data["email"])

        existing_user = await self.get_by_email(email)
        if existing_user:
            raise ValueError(f"User with email {email} already exists")

        data = dict(user_data)
        password = data.pop("password")
        user = User(
            **{
                **data,
                "email": email,
                "role": data.get("role", UserRole.USER),
                "user_type": data.get("user_type", UserType.INDIVIDUAL),
            }
        )
        user.set_password(password)
        self.db.add(user)

        try:
            if commit:
                await self.db.commit()
                await self.db.refresh(user)
            else:
                await self.db.flush()
        except Exception as e:
            if commit:
                await self.db.rollback()
            logger.error(f"Failed to create user: {e}")
            raise

        logger.info(f"Created user: {user.email} (ID: {user.id})")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address (case-insensitive)."""
        normalized_email = email.lower().strip()
        result = await self.db.execute(select(User).where(User.email == normalized_email))
        return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User instance if the password matches, None otherwise
        """
        user = await self.get_by_email(email)
        if not user:
            logger.debug(f"Authentication failed: user {email} not found")
            return None
        if not user.verify_password(password):
            logger.debug(f"Authentication failed: invalid password for {email}")
            return None
        return user

    async def update_password(self, user: User, new_password: str) -> User:
        user.set_password(new_password)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Updated password for user: {user.email}")
        return user

    async def get_recent(self, limit: int = 5) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()).limit(limit))
        return list(result.scalars().all())

    async def delete_account_data(self, user_id: uuid.UUID) -> None:
        """
        Remove a user and everything they own. Runs inside the caller's
        transaction; nothing is committed here.
        """
        for model, column in (
            (UserSubscription, UserSubscription.user_id),
            (SubscriptionUsage, SubscriptionUsage.user_id),
            (Booking, Booking.user_id),
            (Favorite, Favorite.user_id),
            (PropertyReview, PropertyReview.user_id),
            (Wishlist, Wishlist.user_id),
            (ShortStayFavorite, ShortStayFavorite.user_id),
            (Property, Property.user_id),
        ):
            result = await self.db.execute(delete(model).where(column == user_id))
            logger.debug(f"Deleted {result.rowcount} {model.__name__} rows for user {user_id}")

        await self.db.execute(delete(User).where(User.id == user_id))


class AccountDeletionRepository(BaseRepository[AccountDeletion]):
    """Audit trail for deleted accounts."""

    def __init__(self, db: AsyncSession):
        super().__init__(AccountDeletion, db)
