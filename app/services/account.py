"""
Account management: profile photo, activity stats and the verified account
deletion flow.

Deletion needs one proof of identity: a short-lived verification token
issued after re-entering the password, or an emailed OTP. Tokens and OTP
request history are kept in process memory.
"""

import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.booking import Booking
from app.models.property import Favorite, Property
from app.models.user import User
from app.repositories.live_group import LiveGroupRepository
from app.repositories.short_stay import ReservationRepository, ShortStayRepository
from app.repositories.user import AccountDeletionRepository, UserRepository
from app.schemas.auth import DeleteAccountRequest
from app.services.otp import ACCOUNT_DELETION, OTPService
from app.utils.exceptions import (
    APIException,
    BadRequestError,
    RateLimitExceededError,
    UnauthorizedError,
)
from app.utils.file_utils import file_storage

logger = logging.getLogger(__name__)


@dataclass
class _VerificationToken:
    user_id: str
    expires_at: float


@dataclass
class _OTPRequestLog:
    sent_at: List[float] = field(default_factory=list)


class DeletionVerificationStore:
    """One-time deletion tokens and OTP request throttling, per process."""

    def __init__(self):
        self._tokens: Dict[str, _VerificationToken] = {}
        self._otp_requests: Dict[str, _OTPRequestLog] = {}

    def issue_token(self, user_id: str) -> str:
        self._purge()
        token = secrets.token_urlsafe(32)
        self._tokens[token] = _VerificationToken(
            user_id=user_id,
            expires_at=time.monotonic() + settings.deletion_token_expire_minutes * 60,
        )
        return token

    def consume_token(self, token: Optional[str], user_id: str) -> bool:
        """True if `token` was issued to `user_id` and is unexpired; it is spent either way."""
        if not token:
            return False
        entry = self._tokens.pop(token, None)
        if entry is None or entry.user_id != user_id:
            return False
        return entry.expires_at > time.monotonic()

    def register_otp_request(self, user_id: str) -> None:
        """
        Record an OTP request.

        Raises:
            RateLimitExceededError: Inside the cooldown or over the window quota
        """
        now = time.monotonic()
        window = settings.deletion_otp_window_minutes * 60
        log = self._otp_requests.setdefault(user_id, _OTPRequestLog())
        log.sent_at = [t for t in log.sent_at if now - t < window]

        if log.sent_at:
            since_last = now - log.sent_at[-1]
            if since_last < settings.deletion_otp_cooldown_seconds:
                wait = int(settings.deletion_otp_cooldown_seconds - since_last) + 1
                raise RateLimitExceededError(wait, f"Please wait {wait} seconds before requesting another OTP")

        if len(log.sent_at) >= settings.deletion_otp_max_requests:
            wait = int(window - (now - log.sent_at[0])) + 1
            raise RateLimitExceededError(wait, "Too many OTP requests. Please try again later")

        log.sent_at.append(now)

    def forget(self, user_id: str) -> None:
        self._otp_requests.pop(user_id, None)
        for token in [t for t, entry in self._tokens.items() if entry.user_id == user_id]:
            del self._tokens[token]

    def _purge(self) -> None:
        now = time.monotonic()
        for token in [t for t, entry in self._tokens.items() if entry.expires_at <= now]:
            del self._tokens[token]


deletion_store = DeletionVerificationStore()


class AccountService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.deletion_repo = AccountDeletionRepository(db_session)
        self.otp_service = OTPService(db_session)

    async def upload_profile_photo(self, user: User, photo: Optional[UploadFile]) -> str:
        if photo is None or not photo.filename:
            raise BadRequestError("No photo uploaded")
        url = await file_storage.save(photo, "profiles")
        await self.user_repo.update(user, {"profile_photo": url})
        logger.info(f"Profile photo updated for {user.email}")
        return url

    async def get_stats(self, user: User) -> Dict[str, int]:
        """Activity counters shown on the profile page."""
        marketplace = await self._count(select(func.count(Property.id)).where(Property.user_id == user.id))
        short_stay = await ShortStayRepository(self.db).count_by_host(user.id)
        bookings = await self._count(select(func.count(Booking.id)).where(Booking.user_id == user.id))
        favorites = await self._count(select(func.count(Favorite.id)).where(Favorite.user_id == user.id))
        return {
            "properties": marketplace + short_stay,
            "bookings": bookings,
            "liveGroupings": await LiveGroupRepository(self.db).count_user_booked_units(user.id),
            "favorites": favorites,
            "shortStayBookings": await ReservationRepository(self.db).count_for_traveler(user.id),
        }

    async def _count(self, query) -> int:
        result = await self.db.execute(query)
        return result.scalar() or 0

    # Deletion flow

    def verify_password(self, user: User, password: str) -> str:
        if not user.verify_password(password):
            raise UnauthorizedError("Incorrect password")
        return deletion_store.issue_token(str(user.id))

    def verify_email(self, user: User, email: str) -> None:
        try:
            normalized = User.validate_email_format(email)
        except ValueError:
            raise BadRequestError("Invalid email format")
        if normalized != user.email.lower():
            raise BadRequestError("Email does not match your account")

    async def request_deletion_otp(self, user: User) -> None:
        deletion_store.register_otp_request(str(user.id))
        await self.otp_service.issue(user.email, ACCOUNT_DELETION, user.name)

    async def delete_account(self, user: User, data: DeleteAccountRequest,
                             ip_address: Optional[str] = None, user_agent: Optional[str] = None) -> None:
        """
        Remove the user and their data in one transaction, then write the
        audit row. A failed audit write is logged and does not fail the call.
        """
        user_id, email = user.id, user.email

        if deletion_store.consume_token(data.verification_token, str(user_id)):
            method = "password"
        elif data.otp:
            try:
                await self.otp_service.check(email, ACCOUNT_DELETION, data.otp)
            except BadRequestError:
                raise UnauthorizedError("Invalid or expired OTP")
            method = "otp"
        else:
            raise UnauthorizedError("Account ownership could not be verified")

        try:
            await self.user_repo.delete_account_data(user_id)
            await self.db.commit()
        except APIException:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Account deletion failed for {user_id}: {e}")
            raise BadRequestError(f"Failed to delete account: {str(e)}")

        deletion_store.forget(str(user_id))
        logger.info(f"Account deleted: {email} via {method}")

        try:
            await self.deletion_repo.create({
                "user_id": user_id,
                "email": email,
                "deletion_method": method,
                "deletion_reason": data.deletion_reason,
                "ip_address": ip_address,
                "user_agent": user_agent,
            })
        except Exception as e:
            logger.warning(f"Could not record deletion audit for {email}: {e}")
