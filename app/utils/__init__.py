"""
Utility modules for the marketplace API.
"""

from .auth import (
    create_access_token,
    create_refresh_token,
    create_password_reset_token,
    verify_token,
    verify_password_reset_token,
    hash_password,
    verify_password,
    TokenPayload
)

from .exceptions import (
    APIException,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    InvalidCredentialsError,
    TokenExpiredError,
    InvalidTokenError,
    InactiveUserError,
    InsufficientPermissionsError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    "create_access_token",
    "create_refresh_token",
    "create_password_reset_token",
    "verify_token",
    "verify_password_reset_token",
    "hash_password",
    "verify_password",
    "TokenPayload",
    "APIException",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "InvalidCredentialsError",
    "TokenExpiredError",
    "InvalidTokenError",
    "InactiveUserError",
    "InsufficientPermissionsError",
]
