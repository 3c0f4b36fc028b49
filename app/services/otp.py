"""
Email OTP flows: registration and password reset.

A code is six random digits valid for a few minutes. Issuing a new code for
an email replaces the previous one, and a successful verification consumes it.
"""

import logging
import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User, UserType
from app.repositories.otp import OTPRepository
from app.repositories.user import UserRepository
from app.schemas.auth import VerifyAndRegisterRequest
from app.utils import email as mailer
from app.utils.auth import create_password_reset_token, verify_password_reset_token
from app.utils.email_templates import otp_email
from app.utils.exceptions import (
    APIException,
    BadRequestError,
    ExternalServiceError,
    InvalidTokenError,
    NotFoundError,
    ServiceUnavailableError,
)
from app.utils.timeutils import utc_now
from jose import JWTError

logger = logging.getLogger(__name__)

REGISTRATION = "registration"
PASSWORD_RESET = "password-reset"
ACCOUNT_DELETION = "account-deletion"


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class OTPService:
    """Issues and checks emailed one-time codes."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.otp_repo = OTPRepository(db_session)
        self.user_repo = UserRepository(db_session)

    async def issue(self, email: str, purpose: str, name: str = None) -> None:
        """
        Store a fresh code and mail it.

        Raises:
            ServiceUnavailableError: If the mail could not be delivered
        """
        code = generate_otp()
        expires_at = utc_now() + timedelta(minutes=settings.otp_expire_minutes)
        await self.otp_repo.replace(email, purpose, code, expires_at)

        subject, html, text = otp_email(code, name, purpose)
        try:
            await mailer.send_brevo_email(email, subject, html, text, name=name)
        except ExternalServiceError as e:
            logger.error(f"Could not deliver {purpose} OTP to {email}: {e.detail}")
            raise ServiceUnavailableError("Failed to send OTP email. Please try again later.")
        logger.info(f"{purpose} OTP issued for {email}")

    async def check(self, email: str, purpose: str, code: str, consume: bool = True) -> None:
        """Raises BadRequestError unless `code` is the current unexpired code."""
        otp = await self.otp_repo.find_valid(email, purpose, (code or "").strip(), utc_now())
        if not otp:
            raise BadRequestError("Invalid or expired OTP")
        if consume:
            await self.otp_repo.clear(email, purpose, commit=False)

    # Registration

    async def send_registration_otp(self, email: str, name: str = None) -> None:
        try:
            existing = await self.user_repo.get_by_email(email)
            if existing and existing.is_verified:
                raise BadRequestError("Email already registered. Please log in.")
            await self.issue(email, REGISTRATION, name)
        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to send registration OTP to {email}: {e}")
            raise BadRequestError(f"Failed to send OTP: {str(e)}")

    async def verify_and_register(self, data: VerifyAndRegisterRequest) -> User:
        """
        Consume the registration code and create (or complete) the account.

        An unverified row left by an earlier attempt is updated in place.
        """
        try:
            existing = await self.user_repo.get_by_email(data.email)
            if existing and existing.is_verified:
                raise BadRequestError("Email already registered. Please log in.")

            await self.check(data.email, REGISTRATION, data.otp)
            user_type = data.user_type or UserType.INDIVIDUAL

            if existing:
                existing.name = data.name.strip()
                existing.phone = data.phone
                existing.user_type = user_type
                existing.is_verified = True
                existing.set_password(data.password)
                user = existing
            else:
                user = await self.user_repo.create_user(
                    {
                        "email": data.email,
                        "password": data.password,
                        "name": data.name.strip(),
                        "phone": data.phone,
                        "user_type": user_type,
                        "is_verified": True,
                    },
                    commit=False,
                )

            await self.db.commit()
            await self.db.refresh(user)
            logger.info(f"User registered via OTP: {user.email}")
            return user
        except APIException:
            await self.db.rollback()
            raise
        except ValueError as e:
            await self.db.rollback()
            raise BadRequestError(str(e))
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Registration failed for {data.email}: {e}")
            raise BadRequestError(f"Registration failed: {str(e)}")

    # Password reset

    async def send_password_reset_otp(self, email: str) -> None:
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise NotFoundError("User")
        await self.issue(email, PASSWORD_RESET, user.name)

    async def verify_password_reset_otp(self, email: str, code: str) -> str:
        """Consume the reset code and return a short-lived reset token."""
        await self.check(email, PASSWORD_RESET, code)
        await self.db.commit()
        return create_password_reset_token(email)

    async def reset_password(self, email: str, new_password: str, reset_token: str) -> None:
        try:
            token_email = verify_password_reset_token(reset_token)
        except JWTError:
            raise InvalidTokenError("Invalid or expired reset token")
        if token_email.lower() != email.lower():
            raise InvalidTokenError("Reset token does not match this email")

        user = await self.user_repo.get_by_email(email)
        if not user:
            raise NotFoundError("User")
        await self.user_repo.update_password(user, new_password)
        logger.info(f"Password reset for {email}")
