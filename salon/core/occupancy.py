# salon/core/occupancy.py
"""
Occupancy calculator.

Classifies every slot of a worker's day for a candidate duration. This is
advisory (what the UI greys out); the write path re-checks with
``salon.core.conflicts``. Every call site (client scheduling, admin create,
admin edit, admin time blocking) goes through ``classify_day``.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, NamedTuple, Optional

from salon.core.timegrid import (
    CLOSE_MINUTES,
    SLOT_MINUTES,
    from_minutes,
    slots_for,
    slots_needed,
    to_minutes,
)


class SlotStatus(str, Enum):
    available = "available"
    booked = "booked"
    insufficient = "insufficient"


class Occupant(NamedTuple):
    time: str
    duration: int
    id: Optional[int] = None


@dataclass(frozen=True)
class SlotAvailability:
    slot_time: str
    classification: SlotStatus
    past: bool = False


def as_occupants(rows: Iterable) -> list[Occupant]:
    """Accepts Appointment rows, Occupants, or (time, duration) pairs."""
    occupants = []
    for row in rows:
        if isinstance(row, Occupant):
            occupants.append(row)
        elif isinstance(row, tuple):
            occupants.append(Occupant(*row))
        else:
            occupants.append(Occupant(row.appointment_time, row.duration, getattr(row, "id", None)))
    return occupants


def _span(start: int, duration: int) -> tuple[int, int]:
    # Occupancy is counted in whole slots
    return start, start + slots_needed(duration) * SLOT_MINUTES


def classify_slot(start: int, duration: int, occupants: Iterable[Occupant]) -> SlotStatus:
    """Classify a candidate start (minutes since midnight) for ``duration`` minutes."""
    _, candidate_end = _span(start, duration)
    insufficient = candidate_end > CLOSE_MINUTES

    for occupant in occupants:
        occ_start, occ_end = _span(to_minutes(occupant.time), occupant.duration)
        if occ_start <= start < occ_end:
            # booked wins over insufficient
            return SlotStatus.booked
        if occ_start > start and candidate_end > occ_start:
            insufficient = True

    return SlotStatus.insufficient if insufficient else SlotStatus.available


def classify_day(occupants: Iterable, duration: int, day=None) -> list[SlotAvailability]:
    occupants = as_occupants(occupants)
    return [
        SlotAvailability(slot, classify_slot(to_minutes(slot), duration, occupants))
        for slot in slots_for(day)
    ]


def occupied_slots(occupants: Iterable) -> set[str]:
    """Grid slots covered by existing appointments."""
    taken = set()
    for occupant in as_occupants(occupants):
        start, end = _span(to_minutes(occupant.time), occupant.duration)
        for minutes in range(start, end, SLOT_MINUTES):
            taken.add(from_minutes(minutes))
    return taken
