"""
Service layer for business logic implementation.
Contains services for accounts, listings, bookings, live grouping, short stays and error handling.
"""

from .auth import AuthService
from .property import PropertyService, FavoriteService
from .live_group import LiveGroupService
from .short_stay import ShortStayService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "PropertyService",
    "FavoriteService",
    "LiveGroupService",
    "ShortStayService",
    "ErrorHandlerService"
]
