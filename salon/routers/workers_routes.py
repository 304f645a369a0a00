# salon/routers/workers_routes.py

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from salon.auth import get_current_user
from salon.db import get_session
from salon.schemas import AvailabilityResponse
from salon.services.booking import compute_availability

router = APIRouter(
    prefix="/workers",
    tags=["workers"],
)


@router.get("/{worker_id}/availability", response_model=AvailabilityResponse)
def worker_availability(
    worker_id: int,
    date: date,
    duration: int = Query(default=15, ge=0, le=720),
    exclude_appointment_id: Optional[int] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # exclude_appointment_id lets an editor see its own slot as free
    return compute_availability(
        session,
        worker_id,
        date,
        duration,
        exclude_id=exclude_appointment_id,
    )
