"""
Pydantic schemas for login, OTP registration, password reset and account deletion.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, validator
from typing import Optional
from app.models.user import UserType
from app.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(..., description="Account email", examples=["buyer@example.com"])
    password: str = Field(..., min_length=1, max_length=128, description="Account password")

    @validator("email")
    def normalize_email(cls, v):
        return v.lower().strip()


class RefreshTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken", description="Refresh token issued at login")


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class LoginResponse(TokenResponse):
    """Tokens plus the authenticated user's profile."""

    user: UserResponse


class SendOTPRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)

    @validator("email")
    def normalize_email(cls, v):
        return v.lower().strip()


class VerifyAndRegisterRequest(BaseModel):
    """Completes registration with the emailed code."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    user_type: Optional[UserType] = Field(None, alias="userType")

    @validator("email")
    def normalize_email(cls, v):
        return v.lower().strip()

    @validator("user_type")
    def reject_admin_type(cls, v):
        if v == UserType.ADMIN:
            raise ValueError("userType must be individual, developer or builder")
        return v


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @validator("email")
    def normalize_email(cls, v):
        return v.lower().strip()


class VerifyResetOTPRequest(ForgotPasswordRequest):
    otp: str = Field(..., min_length=6, max_length=6)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    new_password: str = Field(..., alias="newPassword", min_length=6, max_length=128)
    reset_token: str = Field(..., alias="resetToken")

    @validator("email")
    def normalize_email(cls, v):
        return v.lower().strip()


class VerifyPasswordRequest(BaseModel):
    password: str = Field(..., min_length=1)


class VerifyEmailRequest(BaseModel):
    # Checked in the service so a malformed address is a 400, not a 422.
    email: str = Field(..., min_length=1)


class DeleteAccountRequest(BaseModel):
    """Either a verification token from the password step or an emailed OTP."""

    model_config = ConfigDict(populate_by_name=True)

    verification_token: Optional[str] = Field(None, alias="verificationToken")
    otp: Optional[str] = None
    deletion_reason: Optional[str] = Field(None, alias="deletionReason", max_length=1000)
