"""
Email OTP storage.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from app.repositories.base import BaseRepository
from app.models.otp import EmailOTP
from datetime import datetime
from typing import Optional


class OTPRepository(BaseRepository[EmailOTP]):

    def __init__(self, db: AsyncSession):
        super().__init__(EmailOTP, db)

    async def replace(self, email: str, purpose: str, code: str, expires_at: datetime) -> EmailOTP:
        """Store a fresh code, discarding any earlier one for the same email and purpose."""
        await self.db.execute(delete(EmailOTP).where(EmailOTP.email == email, EmailOTP.purpose == purpose))
        return await self.create({"email": email, "purpose": purpose, "code": code, "expires_at": expires_at})

    async def find_valid(self, email: str, purpose: str, code: str, now: datetime) -> Optional[EmailOTP]:
        result = await self.db.execute(
            select(EmailOTP).where(
                EmailOTP.email == email,
                EmailOTP.purpose == purpose,
                EmailOTP.code == code,
                EmailOTP.expires_at > now,
            )
        )
        return result.scalars().first()

    async def clear(self, email: str, purpose: str, commit: bool = True) -> None:
        await self.db.execute(delete(EmailOTP).where(EmailOTP.email == email, EmailOTP.purpose == purpose))
        if commit:
            await self.db.commit()
