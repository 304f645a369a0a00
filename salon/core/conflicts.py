# salon/core/conflicts.py
"""
Write-time conflict validator.

Runs against appointments re-fetched right before the write. Stricter than
the occupancy view: durations are taken as-is (no slot rounding), and any
exact-start collision is rejected before the overlap test. The storage
unique index stays the final guard for races between two passing checks.
"""
from __future__ import annotations

from typing import Iterable, Optional

from salon.core import overlaps
from salon.core.occupancy import Occupant, as_occupants
from salon.core.timegrid import normalize_time, to_minutes
from salon.errors import SlotConflictError


def find_conflict(
    start: str,
    duration: int,
    existing: Iterable,
    exclude_id: Optional[int] = None,
) -> Optional[Occupant]:
    """Return the first appointment that blocks the proposal, or None."""
    start = normalize_time(start)
    candidates = [o for o in as_occupants(existing) if exclude_id is None or o.id != exclude_id]

    # 1) Exact-start collision
    for occupant in candidates:
        if normalize_time(occupant.time) == start:
            return occupant

    # 2) Half-open overlap
    new_start = to_minutes(start)
    new_end = new_start + duration
    for occupant in candidates:
        occ_start = to_minutes(occupant.time)
        if overlaps(new_start, new_end, occ_start, occ_start + occupant.duration):
            return occupant

    return None


def ensure_no_conflict(start, duration, existing, exclude_id=None) -> None:
    # Same error as a lost uniqueness race; callers cannot tell them apart
    if find_conflict(start, duration, existing, exclude_id=exclude_id) is not None:
        raise SlotConflictError()
