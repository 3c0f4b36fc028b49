"""
API route handlers for the marketplace API.
"""

from .auth import router as auth_router
from .otp import router as otp_router, forgot_password_router
from .users import router as users_router
from .properties import router as properties_router
from .favorites import router as favorites_router
from .admin import router as admin_router
from .bookings import router as bookings_router
from .subscriptions import router as subscriptions_router
from .live_grouping import router as live_grouping_router
from .joined_live_groups import router as joined_live_groups_router
from .short_stay import router as short_stay_router
from .short_stay_reviews import router as short_stay_reviews_router
from .reviews import router as reviews_router
from .wishlists import router as wishlists_router
from .chat import router as chat_router, ws_router as chat_ws_router
from .marketing import router as marketing_router, signup_router as marketing_signup_router
from .proxy import router as proxy_router

api_routers = [
    auth_router,
    otp_router,
    forgot_password_router,
    users_router,
    properties_router,
    favorites_router,
    admin_router,
    bookings_router,
    subscriptions_router,
    live_grouping_router,
    joined_live_groups_router,
    short_stay_router,
    short_stay_reviews_router,
    reviews_router,
    wishlists_router,
    chat_router,
    chat_ws_router,
    marketing_router,
    marketing_signup_router,
    proxy_router,
]

__all__ = ["api_routers"]
