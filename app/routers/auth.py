"""
Authentication API endpoints for login, token refresh and the current profile.
"""

from fastapi import APIRouter, Depends, status
from app.models.user import User
from app.services.auth import AuthService
from app.schemas.auth import LoginRequest, LoginResponse, RefreshTokenRequest, TokenResponse
from app.schemas.user import UserResponse, UserUpdate
from app.middleware.rate_limit import rate_limit
from app.utils.dependencies import get_auth_service, get_current_user
from app.schemas.error import get_auth_error_responses, get_common_error_responses


router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    dependencies=[Depends(rate_limit("auth"))],
)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate with email and password; returns the profile and JWT tokens",
    responses=get_auth_error_responses()
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        ForbiddenError: If the account is unverified or inactive
    """
    user, access_token, refresh_token = await auth_service.login(login_data.email, login_data.password)
    return LoginResponse(
        user=UserResponse.model_validate(user.to_dict()),
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=auth_service.access_token_lifetime_seconds()
    )


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh access token",
    responses=get_auth_error_responses()
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    access_token = await auth_service.refresh_access_token(refresh_data.refresh_token)
    return TokenResponse(
        access_token=access_token,
        expires_in=auth_service.access_token_lifetime_seconds()
    )


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    responses=get_auth_error_responses()
)
async def get_current_user_info(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user.to_dict())


@router.put(
    "/me",
    response_model=UserResponse,
    summary="Update current user",
    description="Update the caller's name and phone number",
    responses=get_common_error_responses()
)
async def update_current_user(
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.update_profile(current_user, update_data)
    return UserResponse.model_validate(user.to_dict())
