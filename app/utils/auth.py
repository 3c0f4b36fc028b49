"""
Authentication utilities for JWT token management and password hashing.
Provides access, refresh and password-reset tokens plus bcrypt helpers.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext
from app.config import settings
import uuid


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_RESET_TOKEN_TYPE = "password-reset"


class TokenPayload:
    """JWT token payload structure."""

    def __init__(self, user_id: str, email: str, role: Optional[str], exp: datetime):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.exp = exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        return cls(
            user_id=data["sub"],
            email=data["email"],
            role=data.get("role"),  # Role is optional for refresh tokens
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )


def _encode(claims: Dict[str, Any], expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = dict(claims)
    to_encode.update({"exp": now + expires_delta, "iat": now})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token with user claims.

    Args:
        user_id: User's UUID
        email: User's email address
        role: User's role value (user/admin)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    return _encode(
        {"sub": str(user_id), "email": email, "role": role, "type": "access"},
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(
    user_id: uuid.UUID,
    email: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT refresh token."""
    return _encode(
        {"sub": str(user_id), "email": email, "type": "refresh"},
        expires_delta or timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def create_password_reset_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Short-lived token proving the reset OTP was verified for `email`."""
    return _encode(
        {"email": email, "type": PASSWORD_RESET_TOKEN_TYPE},
        expires_delta or timedelta(minutes=settings.password_reset_token_expire_minutes),
    )


def _decode(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise JWTError("Token has expired")


def verify_token(token: str, token_type: str = "access") -> TokenPayload:
    """
    Verify and decode JWT token.

    Args:
        token: JWT token string
        token_type: Expected token type ("access" or "refresh")

    Returns:
        TokenPayload if valid

    Raises:
        JWTError: If token is invalid or expired
    """
    try:
        payload = _decode(token)

        if payload.get("type") != token_type:
            raise JWTError(f"Invalid token type. Expected {token_type}")

        if not payload.get("sub") or not payload.get("email"):
            raise JWTError("Invalid token payload")

        return TokenPayload.from_dict(payload)

    except JWTError:
        raise
    except Exception as e:
        raise JWTError(f"Token validation error: {str(e)}")


def verify_password_reset_token(token: str) -> str:
    """
    Validate a password-reset token and return the email it was issued for.

    Raises:
        JWTError: If the token is invalid, expired or of another type
    """
    payload = _decode(token)
    if payload.get("type") != PASSWORD_RESET_TOKEN_TYPE or not payload.get("email"):
        raise JWTError("Invalid reset token")
    return payload["email"]


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Raises:
        ValueError: If password is too short
    """
    if not password or len(password) < 6:
        raise ValueError("Password must be at least 6 characters long")

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)
