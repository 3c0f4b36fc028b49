"""
Fixed-window rate limiting per client IP and route class.

Routers attach a limiter with `dependencies=[Depends(rate_limit("read"))]`;
each route class keeps its own counters.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Tuple
from fastapi import Request
import asyncio
import logging
import time

from app.config import settings
from app.utils.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    requests: int
    window_seconds: int


RATE_LIMIT_RULES: Dict[str, RateLimitRule] = {
    "auth": RateLimitRule(50, 15 * 60),
    "otp": RateLimitRule(20, 15 * 60),
    "mutation": RateLimitRule(30, 60),
    "read": RateLimitRule(100, 60),
}


def get_client_ip(request: Request) -> str:
    """Client address, honouring proxy headers."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


class RateLimiter:
    """
    Counts requests per client inside a fixed window.
    A client that exceeds the window budget gets 429 with Retry-After until
    the window rolls over.
    """

    def __init__(self, name: str, rule: RateLimitRule):
        self.name = name
        self.rule = rule
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, client_id: str, now: float = None) -> None:
        """
        Record one request.

        Raises:
            RateLimitExceededError: Budget for the current window is spent
        """
        now = time.monotonic() if now is None else now
        async with self._lock:
            self._purge(now)
            count, window_start = self._counters.get(client_id, (0, now))
            if now - window_start >= self.rule.window_seconds:
                count, window_start = 0, now

            if count >= self.rule.requests:
                retry_after = max(1, int(self.rule.window_seconds - (now - window_start)))
                logger.warning(f"Rate limit '{self.name}' exceeded by {client_id}, retry in {retry_after}s")
                raise RateLimitExceededError(retry_after)

            self._counters[client_id] = (count + 1, window_start)

    def reset(self) -> None:
        self._counters.clear()

    def _purge(self, now: float) -> None:
        expired = [
            client for client, (_, start) in self._counters.items()
            if now - start > self.rule.window_seconds * 2
        ]
        for client in expired:
            del self._counters[client]


limiters: Dict[str, RateLimiter] = {name: RateLimiter(name, rule) for name, rule in RATE_LIMIT_RULES.items()}


def rate_limit(route_class: str) -> Callable:
    """Dependency factory applying the limiter of a route class."""
    limiter = limiters[route_class]

    async def dependency(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        await limiter.hit(get_client_ip(request))

    return dependency


def reset_rate_limits() -> None:
    for limiter in limiters.values():
        limiter.reset()
