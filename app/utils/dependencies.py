"""
FastAPI dependency injection utilities for authentication and services.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from app.database import get_db
from app.models.user import User
from app.services.account import AccountService
from app.services.admin import AdminService
from app.services.auth import AuthService
from app.services.booking import BookingService
from app.services.chat import ChatService
from app.services.joined_live_groups import JoinedLiveGroupsService
from app.services.live_group import LiveGroupService
from app.services.marketing import MarketingService
from app.services.otp import OTPService
from app.services.property import FavoriteService, PropertyService
from app.services.review import ReviewService
from app.services.short_stay import ShortStayService
from app.services.short_stay_review import ShortStayReviewService
from app.services.subscription import SubscriptionService
from app.services.wishlist import WishlistService
from app.utils.exceptions import (
    UnauthorizedError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    InsufficientPermissionsError
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


async def get_otp_service(db: AsyncSession = Depends(get_db)) -> OTPService:
    return OTPService(db)


async def get_account_service(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


async def get_favorite_service(db: AsyncSession = Depends(get_db)) -> FavoriteService:
    return FavoriteService(db)


async def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


async def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


async def get_subscription_service(db: AsyncSession = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


async def get_live_group_service(db: AsyncSession = Depends(get_db)) -> LiveGroupService:
    return LiveGroupService(db)


async def get_joined_live_groups_service(db: AsyncSession = Depends(get_db)) -> JoinedLiveGroupsService:
    return JoinedLiveGroupsService(db)


async def get_short_stay_service(db: AsyncSession = Depends(get_db)) -> ShortStayService:
    return ShortStayService(db)


async def get_short_stay_review_service(db: AsyncSession = Depends(get_db)) -> ShortStayReviewService:
    return ShortStayReviewService(db)


async def get_review_service(db: AsyncSession = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


async def get_wishlist_service(db: AsyncSession = Depends(get_db)) -> WishlistService:
    return WishlistService(db)


async def get_chat_service(db: AsyncSession = Depends(get_db)) -> ChatService:
    return ChatService(db)


async def get_marketing_service(db: AsyncSession = Depends(get_db)) -> MarketingService:
    return MarketingService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from the bearer token.

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except (InvalidTokenError, TokenExpiredError, InactiveUserError):
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


async def get_current_admin_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Raises:
        InsufficientPermissionsError: If user is not an admin
    """
    if not current_user.is_admin:
        raise InsufficientPermissionsError("access admin resources")

    return current_user


# Public endpoints that personalise their response when a valid token is sent
async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    if not credentials:
        return None

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except (InvalidTokenError, TokenExpiredError, InactiveUserError):
        return None
