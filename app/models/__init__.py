"""
Database models for the marketplace API.
Importing this package registers every table on the shared metadata.
"""

from app.models.user import User, UserRole, UserType, AccountDeletion
from app.models.property import Property, PropertyStatus, PropertySource, CreditType, Favorite
from app.models.booking import Booking, BookingStatus, PaymentMethod
from app.models.subscription import UserSubscription, SubscriptionUsage
from app.models.live_group import LiveGroupProject, LiveGroupTower, LiveGroupUnit, ProjectStatus, UnitStatus
from app.models.short_stay import (
    ShortStayProperty,
    ShortStayFavorite,
    ShortStayReservation,
    ShortStayCalendar,
    ShortStayReview,
    ReservationStatus,
    CalendarStatus,
)
from app.models.review import PropertyReview
from app.models.wishlist import Wishlist, WishlistProperty
from app.models.chat import Chat
from app.models.otp import EmailOTP
from app.models.marketing import RealEstateAgentSignup, InfluencerSignup

__all__ = [
    "User",
    "UserRole",
    "UserType",
    "AccountDeletion",
    "Property",
    "PropertyStatus",
    "PropertySource",
    "CreditType",
    "Favorite",
    "Booking",
    "BookingStatus",
    "PaymentMethod",
    "UserSubscription",
    "SubscriptionUsage",
    "LiveGroupProject",
    "LiveGroupTower",
    "LiveGroupUnit",
    "ProjectStatus",
    "UnitStatus",
    "ShortStayProperty",
    "ShortStayFavorite",
    "ShortStayReservation",
    "ShortStayCalendar",
    "ShortStayReview",
    "ReservationStatus",
    "CalendarStatus",
    "PropertyReview",
    "Wishlist",
    "WishlistProperty",
    "Chat",
    "EmailOTP",
    "RealEstateAgentSignup",
    "InfluencerSignup",
]
