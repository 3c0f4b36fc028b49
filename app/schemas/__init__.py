"""
Pydantic schemas for request/response validation.
"""

# Authentication schemas
from .auth import (
    LoginRequest,
    RefreshTokenRequest,
    TokenResponse,
    LoginResponse,
    SendOTPRequest,
    VerifyAndRegisterRequest,
    ForgotPasswordRequest,
    VerifyResetOTPRequest,
    ResetPasswordRequest,
    VerifyPasswordRequest,
    VerifyEmailRequest,
    DeleteAccountRequest,
)

# User schemas
from .user import UserResponse, UserUpdate, UserStatsResponse

# Property schemas
from .property import (
    PropertyCreate,
    PropertyUpdate,
    AdminPropertyCreate,
    AdminPropertyUpdate,
    AdminPropertyStatusUpdate,
    FavoriteToggleRequest,
)

# Error schemas
from .error import ErrorDetail, ErrorResponse, APIErrorResponse

__all__ = [
    "LoginRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    "LoginResponse",
    "SendOTPRequest",
    "VerifyAndRegisterRequest",
    "ForgotPasswordRequest",
    "VerifyResetOTPRequest",
    "ResetPasswordRequest",
    "VerifyPasswordRequest",
    "VerifyEmailRequest",
    "DeleteAccountRequest",
    "UserResponse",
    "UserUpdate",
    "UserStatsResponse",
    "PropertyCreate",
    "PropertyUpdate",
    "AdminPropertyCreate",
    "AdminPropertyUpdate",
    "AdminPropertyStatusUpdate",
    "FavoriteToggleRequest",
    "ErrorDetail",
    "ErrorResponse",
    "APIErrorResponse",
]
