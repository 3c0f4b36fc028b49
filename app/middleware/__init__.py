"""
Middleware package for the marketplace API.
Provides request context (ids, size limit, access logging) and per-route-class rate limiting.
"""

from .request_context import RequestContextMiddleware
from .rate_limit import rate_limit, reset_rate_limits

__all__ = [
    "RequestContextMiddleware",
    "rate_limit",
    "reset_rate_limits",
]
