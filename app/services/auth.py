"""
Authentication service: login, token refresh, token-to-user resolution and
profile updates.
"""

from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.repositories.user import UserRepository
from app.models.user import User
from app.schemas.user import UserUpdate
from app.utils.auth import create_access_token, create_refresh_token, verify_token
from app.utils.exceptions import (
    APIException,
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    ForbiddenError,
    BadRequestError,
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """Authenticates users and issues JWT access and refresh tokens."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Check credentials and account state.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            ForbiddenError: Email not verified yet
            InactiveUserError: Account disabled
        """
        user = await self.user_repo.authenticate_user(email, password)
        if not user:
            logger.warning(f"Failed login attempt for {email}")
            raise InvalidCredentialsError()
        if not user.is_active:
            raise InactiveUserError()
        if not user.is_verified:
            raise ForbiddenError("Please verify your email before logging in")
        return user

    def create_tokens(self, user: User) -> Tuple[str, str]:
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
        refresh_token = create_refresh_token(user_id=user.id, email=user.email)
        return access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        try:
            user = await self.authenticate_user(email, password)
            access_token, refresh_token = self.create_tokens(user)
            logger.info(f"User logged in: {user.email}")
            return user, access_token, refresh_token
        except APIException:
            raise
        except Exception as e:
            logger.error(f"Login failed for {email}: {e}")
            raise InvalidCredentialsError()

    async def refresh_access_token(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token."""
        user = await self._user_from_token(refresh_token, "refresh")
        access_token = create_access_token(user_id=user.id, email=user.email, role=user.role.value)
        logger.info(f"Access token refreshed for {user.email}")
        return access_token

    async def get_current_user(self, token: str) -> User:
        return await self._user_from_token(token, "access")

    async def _user_from_token(self, token: str, token_type: str) -> User:
        try:
            payload = verify_token(token, token_type)
        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))

        try:
            user_id = uuid.UUID(payload.user_id)
        except ValueError:
            raise InvalidTokenError("Invalid user ID in token")

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise InvalidTokenError("User not found")
        if not user.is_active:
            raise InactiveUserError()
        return user

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise BadRequestError("Nothing to update")
        try:
            user = await self.user_repo.update(user, changes)
            logger.info(f"Profile updated for {user.email}: {sorted(changes)}")
            return user
        except APIException:
            raise
        except Exception as e:
            logger.error(f"Profile update failed for {user.id}: {e}")
            raise BadRequestError(f"Failed to update profile: {str(e)}")

    @staticmethod
    def access_token_lifetime_seconds() -> int:
        return settings.access_token_expire_minutes * 60
