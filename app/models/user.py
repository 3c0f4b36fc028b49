"""
User model with authentication, posting credits and subscription summary.
Also holds the audit row written when an account is deleted.
"""

from sqlalchemy import String, Boolean, Integer, Numeric, DateTime, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from app.database import Base
from app.utils import auth as auth_utils
from app.utils.timeutils import isoformat
from email_validator import validate_email, EmailNotValidError
from datetime import datetime
from decimal import Decimal
import enum
import uuid
from typing import Optional


class UserRole(str, enum.Enum):
    """User role enumeration for role-based access control."""
    USER = "user"
    ADMIN = "admin"


class UserType(str, enum.Enum):
    """Account type, which decides the plans and credits a user can use."""
    INDIVIDUAL = "individual"
    DEVELOPER = "developer"
    BUILDER = "builder"
    ADMIN = "admin"


class User(Base):
    """Marketplace account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="User email address - must be unique and valid"
    )

    hashed_password: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Bcrypt hashed password, empty until OTP registration completes"
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    profile_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.USER,
        index=True
    )

    user_type: Mapped[UserType] = mapped_column(
        SQLEnum(UserType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserType.INDIVIDUAL,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Posting credits granted by subscriptions
    individual_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    developer_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Latest subscription summary
    is_subscribed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    subscription_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    subscription_plan: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    subscription_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    subscribed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @classmethod
    def validate_email_format(cls, email: str) -> str:
        """
        Validate email format using email-validator.

        Returns:
            Normalized, lower-cased email address

        Raises:
            ValueError: If email format is invalid
        """
        try:
            valid_email = validate_email(email.strip(), check_deliverability=False)
            return valid_email.normalized.lower()
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email format: {str(e)}")

    def verify_password(self, password: str) -> bool:
        return auth_utils.verify_password(password, self.hashed_password)

    def set_password(self, password: str) -> None:
        self.hashed_password = auth_utils.hash_password(password)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN or self.user_type == UserType.ADMIN

    @property
    def is_developer(self) -> bool:
        return self.user_type in (UserType.DEVELOPER, UserType.BUILDER)

    def to_dict(self) -> dict:
        """Public profile (no password hash)."""
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "profile_photo": self.profile_photo,
            "role": self.role.value,
            "user_type": self.user_type.value,
            "is_active": self.is_active,
            "is_verified": self.is_verified,
            "individual_credits": self.individual_credits,
            "developer_credits": self.developer_credits,
            "is_subscribed": self.is_subscribed,
            "subscription_expiry": isoformat(self.subscription_expiry),
            "subscription_plan": self.subscription_plan,
            "created_at": isoformat(self.created_at),
        }


class AccountDeletion(Base):
    """Audit record written after an account is removed."""

    __tablename__ = "account_deletions"

    # The user row is already gone when this is written.
    user_id: Mapped[uuid.UUID] = mapped_column(PostgresUUID(as_uuid=True), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    deletion_method: Mapped[str] = mapped_column(String(20), nullable=False)
    deletion_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
