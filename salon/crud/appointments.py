# salon/crud/appointments.py

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from salon.errors import AppointmentNotFoundError, SlotConflictError
from salon.models import Appointment


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    appt = session.get(Appointment, appointment_id)
    if appt is None:
        raise AppointmentNotFoundError(appointment_id)
    return appt


def list_scheduled_appointments(
    session: Session,
    worker_id: int,
    day: date,
    exclude_id: Optional[int] = None,
) -> Sequence[Appointment]:
    """Scheduled rows (blocked time included) for one worker and date."""
    stmt = (
        select(Appointment)
        .where(Appointment.worker_id == worker_id)
        .where(Appointment.appointment_date == day)
        .where(Appointment.status == "scheduled")
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    stmt = stmt.order_by(Appointment.appointment_time)
    return session.exec(stmt).all()


def _commit(session: Session, appt: Appointment) -> Appointment:
    session.add(appt)
    try:
        session.commit()
    except IntegrityError:
        # Lost the race on uq_appointment_slot
        session.rollback()
        raise SlotConflictError()
    session.refresh(appt)
    return appt


def insert_appointment(session: Session, appt: Appointment) -> Appointment:
    return _commit(session, appt)


def update_appointment(session: Session, appointment_id: int, fields: dict) -> Appointment:
    appt = get_appointment(session, appointment_id)
    for key, value in fields.items():
        setattr(appt, key, value)
    return _commit(session, appt)


def update_appointment_status(
    session: Session,
    appointment_id: int,
    status: str,
    reason: Optional[str],
    actor: str,
) -> Appointment:
    appt = get_appointment(session, appointment_id)
    appt.status = status
    if status == "cancelled":
        appt.cancelled_by = actor
        appt.cancelled_at = datetime.now(timezone.utc)
        appt.cancellation_reason = reason
    session.add(appt)
    session.commit()
    session.refresh(appt)
    return appt


def delete_appointment(session: Session, appointment_id: int) -> None:
    appt = get_appointment(session, appointment_id)
    session.delete(appt)
    session.commit()


def count_client_created_between(
    session: Session,
    user_id: int,
    start_utc: datetime,
    end_utc: datetime,
) -> int:
    """Scheduled appointments a client created in [start_utc, end_utc)."""
    stmt = (
        select(func.count())
        .select_from(Appointment)
        .where(Appointment.user_id == user_id)
        .where(Appointment.kind == "appointment")
        .where(Appointment.status == "scheduled")
        .where(Appointment.created_at >= start_utc)
        .where(Appointment.created_at < end_utc)
    )
    return session.exec(stmt).one()


def list_user_appointments(session: Session, user_id: int, status: Optional[str] = None):
    stmt = select(Appointment).where(Appointment.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Appointment.status == status)
    stmt = stmt.order_by(Appointment.appointment_date, Appointment.appointment_time)
    return session.exec(stmt).all()


def list_worker_appointments(
    session: Session,
    worker_id: Optional[int] = None,
    status: Optional[str] = None,
    on_date: Optional[date] = None,
):
    stmt = select(Appointment)
    if worker_id is not None:
        stmt = stmt.where(Appointment.worker_id == worker_id)
    if status is not None:
        stmt = stmt.where(Appointment.status == status)
    if on_date is not None:
        stmt = stmt.where(Appointment.appointment_date == on_date)
    stmt = stmt.order_by(Appointment.appointment_date, Appointment.appointment_time)
    return session.exec(stmt).all()
