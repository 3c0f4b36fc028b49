"""
User profile endpoints: photo upload, activity stats and account deletion.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, File, Request, UploadFile
from app.models.user import User
from app.services.account import AccountService
from app.schemas.auth import DeleteAccountRequest, VerifyEmailRequest, VerifyPasswordRequest
from app.schemas.user import UserStatsResponse
from app.middleware.rate_limit import get_client_ip, rate_limit
from app.utils.dependencies import get_account_service, get_current_user
from app.schemas.error import get_common_error_responses, get_error_responses


router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(rate_limit("read"))],
    responses=get_common_error_responses()
)


@router.post("/profile-photo", summary="Upload profile photo")
async def upload_profile_photo(
    photo: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
) -> Dict[str, Any]:
    url = await account_service.upload_profile_photo(current_user, photo)
    return {"success": True, "profilePhoto": url}


@router.get("/stats", response_model=UserStatsResponse, summary="Activity counters for the profile page")
async def get_user_stats(
    current_user: User = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
) -> UserStatsResponse:
    return UserStatsResponse(**await account_service.get_stats(current_user))


# Account deletion

@router.post("/delete-account/verify-password", summary="Confirm password before deletion")
async def verify_password_for_deletion(
    data: VerifyPasswordRequest,
    current_user: User = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
) -> Dict[str, Any]:
    """Returns a one-time verification token valid for 5 minutes."""
    token = account_service.verify_password(current_user, data.password)
    return {"success": True, "verificationToken": token}


@router.post("/delete-account/verify-email", summary="Confirm account email before deletion")
async def verify_email_for_deletion(
    data: VerifyEmailRequest,
    current_user: User = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
) -> Dict[str, Any]:
    account_service.verify_email(current_user, data.email)
    return {"success": True, "message": "Email verified"}


@router.post(
    "/delete-account/request-otp",
    summary="Email a deletion OTP",
    responses=get_error_responses(429, 503)
)
async def request_deletion_otp(
    current_user: User = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
) -> Dict[str, Any]:
    await account_service.request_deletion_otp(current_user)
    return {"success": True, "message": "OTP sent to your email"}


@router.delete("/delete-account", summary="Delete account and all its data")
async def delete_account(
    data: DeleteAccountRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    account_service: AccountService = Depends(get_account_service)
) -> Dict[str, Any]:
    await account_service.delete_account(
        current_user,
        data,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent")
    )
    return {"success": True, "message": "Account deleted successfully"}
