# salon/core/timegrid.py
"""
Business-day time grid.

The salon works 09:00-21:00 in a single fixed timezone. Every appointment
starts on a 15-minute boundary, so the day is a sequence of 48 slot starts
(09:00 .. 20:45). Times travel as "HH:MM" strings, dates as ``datetime.date``.
"""
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator
from zoneinfo import ZoneInfo

from salon.config import settings

SLOT_MINUTES = 15
OPEN_MINUTES = 9 * 60
CLOSE_MINUTES = 21 * 60
FULL_DAY_MINUTES = CLOSE_MINUTES - OPEN_MINUTES  # 720

BUSINESS_TZ = ZoneInfo(settings.BUSINESS_TIMEZONE)


def to_minutes(value: str) -> int:
    """'HH:MM' (or 'HH:MM:SS') -> minutes since midnight."""
    parts = value.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time format: {value!r}. Use HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time: {value!r}")
    return hours * 60 + minutes


def from_minutes(minutes: int) -> str:
    """Minutes since midnight -> 'HH:MM'. 24:00 is allowed as an end bound."""
    if not (0 <= minutes <= 24 * 60):
        raise ValueError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    # Drop seconds if present ("10:00:00" -> "10:00")
    return from_minutes(to_minutes(value))


def slots_needed(duration: int) -> int:
    """Whole 15-minute slots a duration occupies (20 min -> 2 slots)."""
    if duration <= 0:
        return 0
    return math.ceil(duration / SLOT_MINUTES)


def is_grid_aligned(value: str) -> bool:
    minutes = to_minutes(value)
    return (
        minutes % SLOT_MINUTES == 0
        and OPEN_MINUTES <= minutes < CLOSE_MINUTES
    )


def end_time(start: str, duration: int) -> str:
    return from_minutes(to_minutes(start) + duration)


class DaySlots:
    """Slot starts of one business day. Iterating again starts over."""

    def __init__(self, day: date | None = None):
        self.day = day

    def __iter__(self) -> Iterator[str]:
        minutes = OPEN_MINUTES
        while minutes < CLOSE_MINUTES:
            yield from_minutes(minutes)
            minutes += SLOT_MINUTES

    def __len__(self) -> int:
        return (CLOSE_MINUTES - OPEN_MINUTES) // SLOT_MINUTES

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and is_grid_aligned(value)

    def __repr__(self) -> str:
        return f"DaySlots({self.day!r})"


def slots_for(day: date | None = None) -> DaySlots:
    # Every business day has the same grid; the day is kept for callers' reference
    return DaySlots(day)


# --- Business timezone ---

def business_now() -> datetime:
    return datetime.now(BUSINESS_TZ)


def business_today() -> date:
    return business_now().date()


def utc_range_for_business_day(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) of a local calendar day. DST days are 23 or 25 hours long."""
    start_local = datetime.combine(day, time.min, tzinfo=BUSINESS_TZ)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=BUSINESS_TZ)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)


def is_past(day: date, start: str, now: datetime | None = None) -> bool:
    """True when the slot start has already passed in business time."""
    now = (now or business_now()).astimezone(BUSINESS_TZ)
    today = now.date()
    if day != today:
        return day < today
    return to_minutes(start) < now.hour * 60 + now.minute
