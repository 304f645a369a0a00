# salon/routers/appointments_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from salon.auth import get_current_user
from salon.db import get_session
from salon.deps import get_daily_limit, get_publisher, rate_limit, require_role
from salon.crud.appointments import list_user_appointments
from salon.schemas import (
    AppointmentPublic,
    AppointmentUpdate,
    CancelResult,
    ClientAppointmentCreate,
    ClientCancel,
)
from salon.services import booking
from salon.services.limits import DailyBookingLimit
from salon.services.notifications import EventPublisher

router = APIRouter(
    tags=["appointments"],
)


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def client_create_appointment(
    appt: ClientAppointmentCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(rate_limit("appointments", "client")),
    publisher: EventPublisher = Depends(get_publisher),
    daily_limit: DailyBookingLimit = Depends(get_daily_limit),
):
    return booking.create_client_appointment(
        session,
        current_user,
        appt,
        publisher=publisher,
        daily_limit=daily_limit,
    )


@router.get("/clients/me/appointments", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[str] = "scheduled",
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, "client")

    if status not in ("scheduled", "cancelled", "all"):
        raise HTTPException(status_code=422, detail="status must be 'scheduled', 'cancelled', or 'all'")

    return list_user_appointments(
        session,
        current_user["id"],
        status=None if status == "all" else status,
    )


@router.post("/appointments/{appt_id}/reschedule", response_model=AppointmentPublic)
def client_reschedule_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    publisher: EventPublisher = Depends(get_publisher),
):
    require_role(current_user, "client")
    return booking.edit_appointment(session, current_user, appt_id, changes, publisher=publisher)


@router.post("/appointments/{appt_id}/cancel", response_model=CancelResult)
def client_cancel_appointment(
    appt_id: int,
    body: ClientCancel,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    publisher: EventPublisher = Depends(get_publisher),
):
    require_role(current_user, "client")
    return booking.cancel_appointment(
        session,
        current_user,
        appt_id,
        reason=body.reason,
        publisher=publisher,
    )
