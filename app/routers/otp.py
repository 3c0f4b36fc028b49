"""
Email OTP endpoints: registration and password reset.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from app.services.auth import AuthService
from app.services.otp import OTPService
from app.schemas.auth import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SendOTPRequest,
    VerifyAndRegisterRequest,
    VerifyResetOTPRequest
)
from app.schemas.user import UserResponse
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_auth_service, get_otp_service
from app.schemas.error import get_error_responses


router = APIRouter(prefix="/otp", tags=["Registration"], dependencies=[Depends(rate_limit("otp"))])
forgot_password_router = APIRouter(
    prefix="/forgot-password",
    tags=["Password Reset"],
    dependencies=[Depends(rate_limit("otp"))],
)


@router.post(
    "/send-otp",
    summary="Send registration OTP",
    description="Email a 6-digit code valid for 5 minutes. Fails if the email already belongs to a verified account.",
    responses=get_error_responses(400, 422, 429, 503)
)
async def send_registration_otp(
    data: SendOTPRequest,
    otp_service: OTPService = Depends(get_otp_service)
) -> Dict[str, Any]:
    await otp_service.send_registration_otp(data.email, data.name)
    return {"success": True, "message": "OTP sent to your email"}


@router.post(
    "/verify-and-register",
    status_code=status.HTTP_201_CREATED,
    summary="Verify OTP and create account",
    responses=get_error_responses(400, 422, 429)
)
async def verify_and_register(
    data: VerifyAndRegisterRequest,
    otp_service: OTPService = Depends(get_otp_service),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """
    Registers the user with the emailed code and signs them in.

    Raises:
        BadRequestError: Invalid or expired code, or email already verified
    """
    user = await otp_service.verify_and_register(data)
    access_token, refresh_token = auth_service.create_tokens(user)
    return {
        "success": True,
        "message": "Registration successful",
        "user": UserResponse.model_validate(user.to_dict()).model_dump(),
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": auth_service.access_token_lifetime_seconds(),
    }


@forgot_password_router.post(
    "/send-otp",
    summary="Send password reset OTP",
    responses=get_error_responses(404, 422, 429, 503)
)
async def send_reset_otp(
    data: ForgotPasswordRequest,
    otp_service: OTPService = Depends(get_otp_service)
) -> Dict[str, Any]:
    await otp_service.send_password_reset_otp(data.email)
    return {"success": True, "message": "OTP sent to your email"}


@forgot_password_router.post(
    "/verify-otp",
    summary="Verify password reset OTP",
    description="Exchanges a valid code for a 15 minute reset token",
    responses=get_error_responses(400, 422, 429)
)
async def verify_reset_otp(
    data: VerifyResetOTPRequest,
    otp_service: OTPService = Depends(get_otp_service)
) -> Dict[str, Any]:
    reset_token = await otp_service.verify_password_reset_otp(data.email, data.otp)
    return {"success": True, "message": "OTP verified", "resetToken": reset_token}


@forgot_password_router.post(
    "/reset-password",
    summary="Reset password",
    responses=get_error_responses(401, 404, 422, 429)
)
async def reset_password(
    data: ResetPasswordRequest,
    otp_service: OTPService = Depends(get_otp_service)
) -> Dict[str, Any]:
    await otp_service.reset_password(data.email, data.new_password, data.reset_token)
    return {"success": True, "message": "Password reset successfully"}
