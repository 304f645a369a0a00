# salon/services/booking.py
"""
Booking transactions: create, edit, cancel, block and unblock.

Every write follows the same order:
  1) validate input and resolve services
  2) re-fetch the worker's scheduled appointments and run the conflict check
  3) persist; the uq_appointment_slot index rejects whoever loses a race
  4) notify the worker and record admin activity (best effort, after the commit)

Validator rejections and lost races both surface as SlotConflictError.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional

from sqlmodel import Session, select

from salon.core.conflicts import ensure_no_conflict
from salon.core.logging import get_logger
from salon.core.occupancy import classify_day, occupied_slots
from salon.core.timegrid import (
    CLOSE_MINUTES,
    FULL_DAY_MINUTES,
    OPEN_MINUTES,
    end_time,
    from_minutes,
    is_grid_aligned,
    is_past,
    to_minutes,
)
from salon.crud.appointments import (
    delete_appointment,
    get_appointment,
    insert_appointment,
    list_scheduled_appointments,
    update_appointment,
    update_appointment_status,
)
from salon.data import (
    BLOCK_DURATIONS,
    BLOCKED_FIRST_NAME,
    BLOCKED_LAST_NAME,
    BLOCKED_SERVICE_NAME,
)
from salon.errors import (
    AppointmentNotFoundError,
    BookingValidationError,
    PermissionDeniedError,
    SlotConflictError,
)
from salon.models import Appointment, Service, User
from salon.schemas import (
    AdminAction,
    AdminAppointmentCreate,
    AppointmentUpdate,
    BlockCreate,
    BlockMode,
    ClientAppointmentCreate,
)
from salon.services.activity import log_admin_activity
from salon.services.limits import DailyBookingLimit
from salon.services.notifications import EventPublisher, notify

logger = get_logger(__name__)

ADMIN_ROLES = ("admin", "head_admin")
MAX_APPOINTMENT_MINUTES = 480


def is_admin(actor: dict) -> bool:
    return actor["role"] in ADMIN_ROLES


# ---------- Validation helpers ----------

def get_worker(session: Session, worker_id: int) -> User:
    worker = session.get(User, worker_id)
    if worker is None or worker.role not in ADMIN_ROLES:
        raise BookingValidationError("Worker not found", details={"worker_id": worker_id})
    return worker


def resolve_services(session: Session, service_ids) -> tuple[str, int]:
    """Combined (name, duration) of the selected services, in the order given."""
    if not service_ids:
        raise BookingValidationError(
            "At least one service must be selected",
            details={"service_ids": "empty"},
        )
    wanted = list(dict.fromkeys(service_ids))
    found = session.exec(select(Service).where(Service.id.in_(wanted))).all()
    by_id = {s.id: s for s in found}

    missing = [sid for sid in wanted if sid not in by_id]
    if missing:
        raise BookingValidationError(
            "One or more selected services are invalid",
            details={"service_ids": missing},
        )

    selected = [by_id[sid] for sid in wanted]
    return ", ".join(s.name for s in selected), sum(s.duration for s in selected)


def validate_window(start: str, duration: int, max_duration: int = MAX_APPOINTMENT_MINUTES) -> None:
    if not (1 <= duration <= max_duration):
        raise BookingValidationError(
            f"Duration must be between 1 and {max_duration} minutes",
            details={"duration": duration},
        )
    if not is_grid_aligned(start):
        raise BookingValidationError(
            "Start time must be on a 15-minute boundary between 09:00 and 20:45",
            details={"appointment_time": start},
        )
    if to_minutes(start) + duration > CLOSE_MINUTES:
        raise BookingValidationError(
            "Appointment must end by 21:00",
            details={"appointment_time": start, "duration": duration},
        )


def _reject_past(day: date, start: str, now: Optional[datetime]) -> None:
    if is_past(day, start, now):
        raise BookingValidationError(
            "Cannot book an appointment in the past",
            details={"appointment_date": str(day), "appointment_time": start},
        )


# ---------- Availability ----------

def compute_availability(
    session: Session,
    worker_id: int,
    day: date,
    duration: int,
    exclude_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Slot classifications for a worker/date/duration. Advisory only."""
    if not (0 <= duration <= FULL_DAY_MINUTES):
        raise BookingValidationError(
            f"Duration must be between 0 and {FULL_DAY_MINUTES} minutes",
            details={"duration": duration},
        )
    get_worker(session, worker_id)

    existing = list_scheduled_appointments(session, worker_id, day, exclude_id=exclude_id)
    # Past slots keep their classification; callers decide whether to offer them
    slots = [
        replace(slot, past=True) if is_past(day, slot.slot_time, now) else slot
        for slot in classify_day(existing, duration, day)
    ]

    return {
        "worker_id": worker_id,
        "date": day,
        "duration": duration,
        "slots": [
            {"slot_time": s.slot_time, "classification": s.classification.value, "past": s.past}
            for s in slots
        ],
        "occupied_slots": sorted(occupied_slots(existing)),
    }


# ---------- Create ----------

def _persist_new(session: Session, appt: Appointment) -> Appointment:
    existing = list_scheduled_appointments(session, appt.worker_id, appt.appointment_date)
    try:
        ensure_no_conflict(appt.appointment_time, appt.duration, existing)
    except SlotConflictError:
        logger.info(
            "slot_conflict",
            stage="validator",
            worker_id=appt.worker_id,
            appointment_date=str(appt.appointment_date),
            appointment_time=appt.appointment_time,
        )
        raise

    try:
        return insert_appointment(session, appt)
    except SlotConflictError:
        logger.warning(
            "slot_conflict",
            stage="insert",
            worker_id=appt.worker_id,
            appointment_date=str(appt.appointment_date),
            appointment_time=appt.appointment_time,
        )
        raise


def create_client_appointment(
    session: Session,
    actor: dict,
    data: ClientAppointmentCreate,
    publisher: Optional[EventPublisher] = None,
    daily_limit: Optional[DailyBookingLimit] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    # 1) Validate worker, services and window
    worker = get_worker(session, data.worker_id)
    service_name, duration = resolve_services(session, data.service_ids)
    validate_window(data.appointment_time, duration)
    _reject_past(data.appointment_date, data.appointment_time, now)

    # 2) Daily cap by creation day
    if daily_limit is not None:
        daily_limit.check(session, actor["id"])

    # 3) Conflict check + insert
    appt = _persist_new(
        session,
        Appointment(
            user_id=actor["id"],
            worker_id=worker.id,
            worker=worker.full_name,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            duration=duration,
            service=service_name,
            notes=data.notes,
            first_name=data.first_name or actor["first_name"],
            last_name=data.last_name or actor["last_name"],
            phone=data.phone or actor.get("phone"),
            email=actor["email"],
        ),
    )
    logger.info("appointment_created", appointment_id=appt.id, worker_id=worker.id, by="client")

    # 4) Tell the worker
    notify(
        publisher,
        recipient_id=worker.id,
        appointment_id=appt.id,
        kind="created",
        message=(
            f"New appointment: {appt.first_name} {appt.last_name} - {appt.service} "
            f"on {appt.appointment_date} at {appt.appointment_time}-"
            f"{end_time(appt.appointment_time, appt.duration)}"
        ),
    )
    return appt


def create_admin_appointment(
    session: Session,
    actor: dict,
    data: AdminAppointmentCreate,
    publisher: Optional[EventPublisher] = None,
) -> Appointment:
    worker = get_worker(session, data.worker_id)
    service_name, duration = resolve_services(session, data.service_ids)
    validate_window(data.appointment_time, duration)

    appt = _persist_new(
        session,
        Appointment(
            user_id=actor["id"],
            worker_id=worker.id,
            worker=worker.full_name,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            duration=duration,
            service=service_name,
            notes=data.notes,
            first_name=data.client_first_name,
            last_name=data.client_last_name,
            phone=data.client_phone,
            email=actor["email"],
        ),
    )
    logger.info("appointment_created", appointment_id=appt.id, worker_id=worker.id, by="admin", admin_id=actor["id"])

    notify(
        publisher,
        recipient_id=worker.id,
        appointment_id=appt.id,
        kind="created",
        message=f"New appointment created: {appt.first_name} {appt.last_name} - {appt.service}",
    )
    log_admin_activity(
        session,
        actor["id"],
        AdminAction.create_appointment,
        {
            "appointment_id": appt.id,
            "worker_id": worker.id,
            "client_name": f"{appt.first_name} {appt.last_name}",
            "date": appt.appointment_date.isoformat(),
            "time": appt.appointment_time,
            "service": appt.service,
        },
    )
    return appt


# ---------- Edit ----------

def edit_appointment(
    session: Session,
    actor: dict,
    appointment_id: int,
    data: AppointmentUpdate,
    publisher: Optional[EventPublisher] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    appt = get_appointment(session, appointment_id)
    if not is_admin(actor) and appt.user_id != actor["id"]:
        raise AppointmentNotFoundError(appointment_id)
    if appt.status != "scheduled":
        raise BookingValidationError("Cannot edit cancelled appointments", details={"status": appt.status})
    if appt.is_blocked_time:
        raise BookingValidationError("Blocked time cannot be edited; unblock it and block again")

    new_date = data.appointment_date or appt.appointment_date
    new_time = data.appointment_time or appt.appointment_time

    # None keeps the current services; an empty list is rejected
    if data.service_ids is not None:
        service_name, duration = resolve_services(session, data.service_ids)
    else:
        service_name, duration = appt.service, appt.duration

    validate_window(new_time, duration)
    rescheduled = new_date != appt.appointment_date or new_time != appt.appointment_time
    if rescheduled and not is_admin(actor):
        _reject_past(new_date, new_time, now)

    existing = list_scheduled_appointments(session, appt.worker_id, new_date, exclude_id=appt.id)
    ensure_no_conflict(new_time, duration, existing, exclude_id=appt.id)

    fields = {
        "appointment_date": new_date,
        "appointment_time": new_time,
        "service": service_name,
        "duration": duration,
    }
    if "notes" in data.model_fields_set:
        fields["notes"] = data.notes
    if rescheduled:
        fields["is_rescheduled"] = True

    previous = {"date": appt.appointment_date.isoformat(), "time": appt.appointment_time}
    appt = update_appointment(session, appt.id, fields)
    logger.info("appointment_updated", appointment_id=appt.id, rescheduled=rescheduled, actor_id=actor["id"])

    if rescheduled and appt.worker_id != actor["id"]:
        notify(
            publisher,
            recipient_id=appt.worker_id,
            appointment_id=appt.id,
            kind="rescheduled",
            message=(
                f"{appt.first_name} {appt.last_name}'s {appt.service} appointment moved to "
                f"{appt.appointment_date} at {appt.appointment_time}"
            ),
        )
    if is_admin(actor):
        log_admin_activity(
            session,
            actor["id"],
            AdminAction.reschedule_appointment,
            {
                "appointment_id": appt.id,
                "client_name": f"{appt.first_name} {appt.last_name}",
                "service": appt.service,
                "from": previous,
                "to": {"date": appt.appointment_date.isoformat(), "time": appt.appointment_time},
                "rescheduled": rescheduled,
            },
        )
    return appt


# ---------- Cancel / unblock ----------

def _already_gone(appointment_id: int) -> dict:
    logger.info("cancel_noop", appointment_id=appointment_id, reason="not_found")
    return {
        "success": True,
        "appointment_id": appointment_id,
        "message": "Appointment not found (may have been already deleted)",
    }


def cancel_appointment(
    session: Session,
    actor: dict,
    appointment_id: int,
    reason: Optional[str] = None,
    publisher: Optional[EventPublisher] = None,
) -> dict:
    """Cancel (or, for blocked time, delete). A missing row counts as success."""
    try:
        appt = get_appointment(session, appointment_id)
    except AppointmentNotFoundError:
        return _already_gone(appointment_id)

    admin = is_admin(actor)
    if not admin:
        if appt.user_id != actor["id"]:
            raise PermissionDeniedError("You can only cancel your own appointments")
        if not reason or not reason.strip():
            raise BookingValidationError("Cancellation reason is required", details={"reason": "empty"})

    if appt.status == "cancelled":
        return {
            "success": True,
            "appointment_id": appointment_id,
            "cancelled": True,
            "message": "Appointment is already cancelled",
        }

    worker_id = appt.worker_id
    summary = f"{appt.appointment_date} at {appt.appointment_time}"

    if appt.is_blocked_time:
        try:
            delete_appointment(session, appointment_id)
        except AppointmentNotFoundError:
            return _already_gone(appointment_id)
        logger.info("time_unblocked", appointment_id=appointment_id, actor_id=actor["id"])
        if worker_id != actor["id"]:
            notify(
                publisher,
                recipient_id=worker_id,
                appointment_id=appointment_id,
                kind="cancelled",
                message=f"{actor['first_name']} {actor['last_name']} unblocked time slot on {summary}",
            )
        if admin:
            log_admin_activity(
                session,
                actor["id"],
                AdminAction.cancel_appointment,
                {"appointment_id": appointment_id, "worker_id": worker_id, "blocked_time": True, "when": summary},
            )
        return {
            "success": True,
            "appointment_id": appointment_id,
            "deleted": True,
            "message": "Time unblocked successfully",
        }

    try:
        appt = update_appointment_status(
            session,
            appointment_id,
            "cancelled",
            reason.strip() if reason else None,
            actor="admin" if admin else "client",
        )
    except AppointmentNotFoundError:
        return _already_gone(appointment_id)
    logger.info("appointment_cancelled", appointment_id=appointment_id, by="admin" if admin else "client")

    client_name = f"{appt.first_name} {appt.last_name}"
    if admin:
        if worker_id != actor["id"]:
            notify(
                publisher,
                recipient_id=worker_id,
                appointment_id=appointment_id,
                kind="cancelled",
                message=(
                    f"{actor['first_name']} {actor['last_name']} cancelled {client_name}'s "
                    f"{appt.service} appointment on {summary}"
                ),
            )
        log_admin_activity(
            session,
            actor["id"],
            AdminAction.cancel_appointment,
            {
                "appointment_id": appointment_id,
                "worker_id": worker_id,
                "client_name": client_name,
                "service": appt.service,
                "when": summary,
                "reason": appt.cancellation_reason,
            },
        )
    else:
        notify(
            publisher,
            recipient_id=worker_id,
            appointment_id=appointment_id,
            kind="cancelled",
            message=f"{client_name} cancelled their {appt.service} appointment on {summary}",
            cancellation_reason=appt.cancellation_reason,
        )

    return {
        "success": True,
        "appointment_id": appointment_id,
        "cancelled": True,
        "message": "Appointment cancelled successfully",
    }


# ---------- Block time ----------

def _block_windows(data: BlockCreate) -> list[tuple[date, str, int]]:
    if data.mode == BlockMode.fullday:
        start = from_minutes(OPEN_MINUTES)
        return [(data.start_date + timedelta(days=i), start, FULL_DAY_MINUTES) for i in range(data.days)]

    if data.start_time is None:
        raise BookingValidationError("Start time is required", details={"start_time": None})
    if data.duration not in BLOCK_DURATIONS:
        raise BookingValidationError(
            "Duration must be one of " + ", ".join(str(d) for d in BLOCK_DURATIONS) + " minutes",
            details={"duration": data.duration},
        )
    return [(data.start_date, data.start_time, data.duration)]


def block_time(
    session: Session,
    actor: dict,
    data: BlockCreate,
    publisher: Optional[EventPublisher] = None,
) -> list[Appointment]:
    """One blocked-time row per window; full-day mode issues one per day."""
    worker_id = data.worker_id or actor["id"]
    if actor["role"] != "head_admin" and worker_id != actor["id"]:
        raise PermissionDeniedError("Admins can only block their own time")
    worker = get_worker(session, worker_id)

    windows = _block_windows(data)
    for _, start, duration in windows:
        validate_window(start, duration, max_duration=FULL_DAY_MINUTES)

    notes = data.notes or ("Full day blocked" if data.mode == BlockMode.fullday else "Time blocked by admin")
    created: list[Appointment] = []
    for day, start, duration in windows:
        try:
            appt = _persist_new(
                session,
                Appointment(
                    user_id=actor["id"],
                    worker_id=worker.id,
                    worker=worker.full_name,
                    appointment_date=day,
                    appointment_time=start,
                    duration=duration,
                    kind="blocked_time",
                    service=BLOCKED_SERVICE_NAME,
                    notes=notes,
                    first_name=BLOCKED_FIRST_NAME,
                    last_name=BLOCKED_LAST_NAME,
                    email=actor["email"],
                ),
            )
        except SlotConflictError as e:
            # Days already blocked stay blocked
            if created:
                e.details = {
                    "failed_date": str(day),
                    "blocked_dates": [str(a.appointment_date) for a in created],
                }
            raise
        created.append(appt)
        logger.info("time_blocked", appointment_id=appt.id, worker_id=worker.id, duration=duration)

        if worker.id != actor["id"]:
            notify(
                publisher,
                recipient_id=worker.id,
                appointment_id=appt.id,
                kind="created",
                message=f"{actor['first_name']} {actor['last_name']} blocked your time on {day} at {start}",
            )

    # Later commits expired the earlier rows
    for appt in created:
        session.refresh(appt)
    return created
