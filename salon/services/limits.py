# salon/services/limits.py
"""
Booking limits.

DailyBookingLimit caps how many appointments a client may create per
business day; it counts rows, so it holds across any number of processes.

RateLimiter is the request-rate seam. InMemoryRateLimiter keeps its counters
in this process only, so it is correct for a single-instance deployment;
several instances need an implementation backed by a shared counter store.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from sqlmodel import Session

from salon.core.logging import get_logger
from salon.core.timegrid import business_today, utc_range_for_business_day
from salon.crud.appointments import count_client_created_between
from salon.errors import LimitExceededError

logger = get_logger(__name__)


class DailyBookingLimit:
    def __init__(self, max_per_day: int, today: Callable = business_today):
        self.max_per_day = max_per_day
        self.today = today

    def created_today(self, session: Session, user_id: int) -> int:
        start_utc, end_utc = utc_range_for_business_day(self.today())
        return count_client_created_between(session, user_id, start_utc, end_utc)

    def check(self, session: Session, user_id: int) -> None:
        count = self.created_today(session, user_id)
        if count >= self.max_per_day:
            logger.info("daily_limit_reached", user_id=user_id, count=count)
            raise LimitExceededError(
                "You have reached the maximum number of appointments for today.",
                details={"limit": self.max_per_day},
            )


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float

    @property
    def retry_after(self) -> int:
        return max(0, int(self.reset_at - time.time()) + 1)


class RateLimiter(Protocol):
    def hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult: ...


class InMemoryRateLimiter:
    """Fixed-window counter per key. Single-process only."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, list] = {}

    def hit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        now = self.clock()
        with self._lock:
            self._evict(now)
            window: Optional[list] = self._windows.get(key)
            if window is None or now >= window[1]:
                window = [0, now + window_seconds]
                self._windows[key] = window
            if window[0] >= max_requests:
                return RateLimitResult(False, 0, window[1])
            window[0] += 1
            return RateLimitResult(True, max_requests - window[0], window[1])

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _evict(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]
