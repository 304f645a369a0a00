"""
Double-booking guard under concurrent writes.

The conflict check runs in every request, so two requests that read the
schedule at the same moment both pass it. The partial unique index is what
lets exactly one of them commit.
"""
import threading

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from conftest import make_user
from salon.auth import user_to_actor
from salon.crud.appointments import insert_appointment
from salon.data import DEFAULT_SERVICES
from salon.db import seed_services
from salon.errors import SlotConflictError
from salon.models import Appointment, Service
from salon.schemas import ClientAppointmentCreate
from salon.services import booking

WRITERS = 5


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


def _appointment(worker, day, time, status="scheduled"):
    return Appointment(
        user_id=worker.id,
        worker_id=worker.id,
        worker=worker.full_name,
        appointment_date=day,
        appointment_time=time,
        duration=30,
        status=status,
        service="Haircut",
        first_name="Walk",
        last_name="In",
        email=worker.email,
    )


def test_storage_rejects_second_scheduled_row(session, worker, booking_day):
    insert_appointment(session, _appointment(worker, booking_day, "10:00"))

    with pytest.raises(SlotConflictError):
        insert_appointment(session, _appointment(worker, booking_day, "10:00"))


def test_cancelled_rows_do_not_hold_the_slot(session, worker, booking_day):
    insert_appointment(session, _appointment(worker, booking_day, "10:00", status="cancelled"))
    insert_appointment(session, _appointment(worker, booking_day, "10:00", status="cancelled"))

    assert insert_appointment(session, _appointment(worker, booking_day, "10:00")).id is not None


def test_only_one_concurrent_booking_wins(file_engine, booking_day, monkeypatch):
    with Session(file_engine) as setup:
        seed_services(setup, DEFAULT_SERVICES)
        worker = make_user(setup, "jelena@salon.test", "admin", "Jelena", "Jovanovic")
        clients = [
            user_to_actor(make_user(setup, f"client{i}@example.com", "client", "Ivana", "Ilic"))
            for i in range(WRITERS)
        ]
        haircut = setup.exec(select(Service).where(Service.name == "Haircut")).one().id
        worker_id = worker.id

    # Hold every writer after its read until all of them have read an empty day
    barrier = threading.Barrier(WRITERS)
    real_list = booking.list_scheduled_appointments

    def list_then_wait(*args, **kwargs):
        rows = real_list(*args, **kwargs)
        barrier.wait(timeout=10)
        return rows

    monkeypatch.setattr(booking, "list_scheduled_appointments", list_then_wait)

    outcomes = []
    lock = threading.Lock()

    def attempt(actor):
        data = ClientAppointmentCreate(
            worker_id=worker_id,
            appointment_date=booking_day,
            appointment_time="10:00",
            service_ids=[haircut],
        )
        with Session(file_engine) as s:
            try:
                booking.create_client_appointment(s, actor, data)
                result = "ok"
            except SlotConflictError:
                result = "conflict"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(actor,)) for actor in clients]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["conflict"] * (WRITERS - 1) + ["ok"]
    with Session(file_engine) as check:
        rows = check.exec(
            select(Appointment)
            .where(Appointment.worker_id == worker_id)
            .where(Appointment.status == "scheduled")
        ).all()
    assert len(rows) == 1
