# salon/deps.py

from fastapi import Depends, HTTPException, Response

from salon.auth import get_current_user
from salon.data import RATE_LIMITS
from salon.db import engine
from salon.config import settings
from salon.services.booking import ADMIN_ROLES
from salon.services.limits import DailyBookingLimit, InMemoryRateLimiter, RateLimiter
from salon.services.notifications import DatabaseNotificationPublisher, EventPublisher

__all__ = ["ADMIN_ROLES", "require_role", "get_publisher", "get_rate_limiter", "get_daily_limit", "rate_limit"]

# Single-process defaults; override the providers below for multi-instance deployments
_rate_limiter = InMemoryRateLimiter()
_publisher = DatabaseNotificationPublisher(engine)


def require_role(user: dict, *roles: str):
    if user["role"] not in roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def get_publisher() -> EventPublisher:
    return _publisher


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


def get_daily_limit() -> DailyBookingLimit:
    return DailyBookingLimit(settings.DAILY_CLIENT_APPOINTMENT_LIMIT)


def rate_limit(bucket: str, *roles: str):
    """Dependency factory: role guard plus a per-user fixed-window limit for one bucket.

    The role is checked first so rejected callers never spend the bucket.
    """
    max_requests, window_seconds = RATE_LIMITS[bucket]

    def dependency(
        response: Response,
        current_user: dict = Depends(get_current_user),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ):
        if roles:
            require_role(current_user, *roles)
        key = f"{bucket}:user:{current_user['id']}"
        result = limiter.hit(key, max_requests, window_seconds)
        if not result.allowed:
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please try again later.",
                headers={"Retry-After": str(result.retry_after)},
            )
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return current_user

    return dependency
