# salon/routers/admin_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from salon.auth import get_current_user
from salon.crud.admin_logs import list_admin_logs
from salon.crud.appointments import list_worker_appointments
from salon.db import get_session
from salon.deps import ADMIN_ROLES, get_publisher, rate_limit, require_role
from salon.schemas import (
    AdminActivityPublic,
    AdminAppointmentCreate,
    AdminCancel,
    AppointmentPublic,
    AppointmentUpdate,
    BlockCreate,
    CancelResult,
)
from salon.services import booking
from salon.services.notifications import EventPublisher

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
)


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def admin_create_appointment(
    appt: AdminAppointmentCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(rate_limit("admin_appointments", *ADMIN_ROLES)),
    publisher: EventPublisher = Depends(get_publisher),
):
    return booking.create_admin_appointment(session, current_user, appt, publisher=publisher)


@router.get("/appointments", response_model=List[AppointmentPublic])
def admin_list_appointments(
    worker_id: Optional[str] = None,
    status: Optional[str] = "scheduled",
    on_date: Optional[date] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *ADMIN_ROLES)

    if status not in ("scheduled", "cancelled", "all"):
        raise HTTPException(status_code=422, detail="status must be 'scheduled', 'cancelled', or 'all'")

    # Admins see their own column; head admins pick a worker or "all"
    if current_user["role"] == "admin":
        target = current_user["id"]
    elif worker_id is None or worker_id == "all":
        target = None
    else:
        try:
            target = int(worker_id)
        except ValueError:
            raise HTTPException(status_code=422, detail="worker_id must be an integer or 'all'")

    return list_worker_appointments(
        session,
        worker_id=target,
        status=None if status == "all" else status,
        on_date=on_date,
    )


@router.patch("/appointments/{appt_id}", response_model=AppointmentPublic)
def admin_update_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(rate_limit("admin_appointment_updates", *ADMIN_ROLES)),
    publisher: EventPublisher = Depends(get_publisher),
):
    return booking.edit_appointment(session, current_user, appt_id, changes, publisher=publisher)


@router.post("/appointments/{appt_id}/cancel", response_model=CancelResult)
def admin_cancel_appointment(
    appt_id: int,
    body: Optional[AdminCancel] = None,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
    publisher: EventPublisher = Depends(get_publisher),
):
    require_role(current_user, *ADMIN_ROLES)
    return booking.cancel_appointment(
        session,
        current_user,
        appt_id,
        reason=body.reason if body else None,
        publisher=publisher,
    )


@router.post("/blocks", response_model=List[AppointmentPublic], status_code=201)
def admin_block_time(
    block: BlockCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(rate_limit("admin_appointments", *ADMIN_ROLES)),
    publisher: EventPublisher = Depends(get_publisher),
):
    return booking.block_time(session, current_user, block, publisher=publisher)


@router.get("/activity", response_model=List[AdminActivityPublic])
def admin_activity(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *ADMIN_ROLES)
    return list_admin_logs(session, current_user["id"], limit=50)
