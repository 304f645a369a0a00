"""
HTTP-level tests: status codes, error bodies and the route wiring.
"""
import time
from datetime import timedelta

from sqlmodel import select

from conftest import PASSWORD, auth_headers
from salon.deps import get_publisher, get_rate_limiter
from salon.errors import SLOT_TAKEN_MESSAGE
from salon.main import app
from salon.models import Appointment, Service
from salon.services.limits import RateLimitResult
from salon.services.notifications import DatabaseNotificationPublisher


def haircut_id(session):
    return session.exec(select(Service).where(Service.name == "Haircut")).one().id


def client_payload(session, worker, day, time="10:00"):
    return {
        "worker_id": worker.id,
        "appointment_date": str(day),
        "appointment_time": time,
        "service_ids": [haircut_id(session)],
    }


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_login_and_me(api, client_user):
    resp = api.post("/auth/login", data={"username": client_user.email, "password": PASSWORD})
    assert resp.status_code == 200
    token = resp.json()["access_token"]

    me = api.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == client_user.email
    assert me.json()["role"] == "client"


def test_login_with_bad_password(api, client_user):
    resp = api.post("/auth/login", data={"username": client_user.email, "password": "nope"})

    assert resp.status_code == 401


def test_register_and_duplicate_email(api):
    body = {
        "email": "new@example.com",
        "password": "long-enough",
        "first_name": "Nina",
        "last_name": "Savic",
        "phone": "+381 64 555 1234",
    }

    first = api.post("/users", json=body)
    assert first.status_code == 201
    assert first.json()["role"] == "client"
    assert first.json()["phone"] == "+381645551234"

    assert api.post("/users", json=body).status_code == 409


def test_only_head_admin_creates_staff(api, worker, head_admin):
    body = {
        "email": "staff@salon.test",
        "password": "long-enough",
        "first_name": "Sara",
        "last_name": "Popovic",
        "role": "admin",
    }

    assert api.post("/admin/users", json=body, headers=auth_headers(worker)).status_code == 403
    assert api.post("/admin/users", json=body, headers=auth_headers(head_admin)).status_code == 201


def test_catalogue_and_workers(api, worker, client_user):
    services = api.get("/services").json()
    workers = api.get("/workers").json()

    assert {"Haircut", "Hair Coloring"} <= {s["name"] for s in services}
    assert [w["id"] for w in workers] == [worker.id]


def test_client_books_and_second_booking_conflicts(api, session, client_user, other_client, worker, booking_day, publisher):
    resp = api.post(
        "/appointments",
        json=client_payload(session, worker, booking_day),
        headers=auth_headers(client_user),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "scheduled"
    assert body["kind"] == "appointment"
    assert body["duration"] == 30
    assert "X-RateLimit-Remaining" in resp.headers
    assert publisher.events[0]["recipient_id"] == worker.id

    clash = api.post(
        "/appointments",
        json=client_payload(session, worker, booking_day, "10:15"),
        headers=auth_headers(other_client),
    )
    assert clash.status_code == 409
    assert clash.json() == {"detail": SLOT_TAKEN_MESSAGE}


def test_staff_cannot_use_client_booking_route(api, session, worker, booking_day):
    resp = api.post(
        "/appointments",
        json=client_payload(session, worker, booking_day),
        headers=auth_headers(worker),
    )

    assert resp.status_code == 403


def test_wrong_role_does_not_spend_rate_limit(api, session, client_user, worker, booking_day):
    class Counting:
        hits = []

        def hit(self, key, max_requests, window_seconds):
            self.hits.append(key)
            return RateLimitResult(True, max_requests - 1, time.time() + window_seconds)

    app.dependency_overrides[get_rate_limiter] = Counting

    as_worker = api.post("/appointments", json=client_payload(session, worker, booking_day), headers=auth_headers(worker))
    as_client = api.post(
        "/admin/appointments",
        json={**client_payload(session, worker, booking_day), "client_first_name": "A", "client_last_name": "B"},
        headers=auth_headers(client_user),
    )

    assert as_worker.status_code == 403
    assert as_client.status_code == 403
    assert Counting.hits == []

    ok = api.post("/appointments", json=client_payload(session, worker, booking_day), headers=auth_headers(client_user))
    assert ok.status_code == 201
    assert Counting.hits == [f"appointments:user:{client_user.id}"]


def test_requires_token(api, session, worker, booking_day):
    assert api.post("/appointments", json=client_payload(session, worker, booking_day)).status_code == 401


def test_malformed_input(api, session, client_user, worker, booking_day):
    headers = auth_headers(client_user)
    bad_date = client_payload(session, worker, booking_day)
    bad_date["appointment_date"] = "04/05/2026"
    bad_time = client_payload(session, worker, booking_day, "10am")
    off_grid = client_payload(session, worker, booking_day, "10:05")

    assert api.post("/appointments", json=bad_date, headers=headers).status_code == 422
    assert api.post("/appointments", json=bad_time, headers=headers).status_code == 422
    assert api.post("/appointments", json=off_grid, headers=headers).status_code == 422


def test_daily_limit_returns_429(api, session, client_user, worker, booking_day):
    headers = auth_headers(client_user)
    for time_ in ("10:00", "11:00", "12:00"):
        resp = api.post("/appointments", json=client_payload(session, worker, booking_day, time_), headers=headers)
        assert resp.status_code == 201

    resp = api.post("/appointments", json=client_payload(session, worker, booking_day, "13:00"), headers=headers)

    assert resp.status_code == 429
    assert resp.json()["detail"] == "You have reached the maximum number of appointments for today."


def test_rate_limit_returns_retry_after(api, session, client_user, worker, booking_day):
    class Exhausted:
        def hit(self, key, max_requests, window_seconds):
            return RateLimitResult(False, 0, time.time() + 120)

    app.dependency_overrides[get_rate_limiter] = Exhausted

    resp = api.post(
        "/appointments",
        json=client_payload(session, worker, booking_day),
        headers=auth_headers(client_user),
    )

    assert resp.status_code == 429
    assert int(resp.headers["Retry-After"]) > 0
    assert session.exec(select(Appointment)).first() is None


def test_availability_endpoint(api, session, client_user, worker, booking_day):
    api.post(
        "/appointments",
        json=client_payload(session, worker, booking_day),
        headers=auth_headers(client_user),
    )

    resp = api.get(
        f"/workers/{worker.id}/availability",
        params={"date": str(booking_day), "duration": 30},
        headers=auth_headers(client_user),
    )

    assert resp.status_code == 200
    body = resp.json()
    slots = {s["slot_time"]: s["classification"] for s in body["slots"]}
    assert slots["09:45"] == "insufficient"
    assert slots["10:00"] == "booked"
    assert slots["10:30"] == "available"
    assert body["occupied_slots"] == ["10:00", "10:15"]

    too_long = api.get(
        f"/workers/{worker.id}/availability",
        params={"date": str(booking_day), "duration": 721},
        headers=auth_headers(client_user),
    )
    assert too_long.status_code == 422


def test_client_reschedule_and_cancel(api, session, client_user, other_client, worker, booking_day):
    headers = auth_headers(client_user)
    appt_id = api.post(
        "/appointments", json=client_payload(session, worker, booking_day), headers=headers
    ).json()["id"]

    moved = api.post(f"/appointments/{appt_id}/reschedule", json={"appointment_time": "15:00"}, headers=headers)
    assert moved.status_code == 200
    assert moved.json()["appointment_time"] == "15:00"
    assert moved.json()["is_rescheduled"] is True

    # Someone else's booking is invisible to edit and forbidden to cancel
    other = auth_headers(other_client)
    assert api.post(
        f"/appointments/{appt_id}/reschedule", json={"appointment_time": "16:00"}, headers=other
    ).status_code == 404
    assert api.post(f"/appointments/{appt_id}/cancel", json={"reason": "x"}, headers=other).status_code == 403

    assert api.post(f"/appointments/{appt_id}/cancel", json={"reason": "  "}, headers=headers).status_code == 422

    cancelled = api.post(f"/appointments/{appt_id}/cancel", json={"reason": "Travelling"}, headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled"] is True

    again = api.post(f"/appointments/{appt_id}/cancel", json={"reason": "Travelling"}, headers=headers)
    assert again.status_code == 200
    assert again.json()["success"] is True

    listed = api.get("/clients/me/appointments", params={"status": "cancelled"}, headers=headers).json()
    assert [a["id"] for a in listed] == [appt_id]


def test_admin_flow(api, session, worker, head_admin, booking_day):
    headers = auth_headers(worker)
    created = api.post(
        "/admin/appointments",
        json={
            "worker_id": worker.id,
            "appointment_date": str(booking_day),
            "appointment_time": "12:00",
            "service_ids": [haircut_id(session)],
            "client_first_name": "Walk",
            "client_last_name": "In",
        },
        headers=headers,
    )
    assert created.status_code == 201
    appt_id = created.json()["id"]

    patched = api.patch(f"/admin/appointments/{appt_id}", json={"notes": "VIP"}, headers=headers)
    assert patched.status_code == 200
    assert patched.json()["notes"] == "VIP"
    assert patched.json()["is_rescheduled"] is False

    assert api.patch("/admin/appointments/999", json={"notes": "x"}, headers=headers).status_code == 404

    listed = api.get("/admin/appointments", params={"on_date": str(booking_day)}, headers=headers).json()
    assert [a["id"] for a in listed] == [appt_id]

    cancelled = api.post(f"/admin/appointments/{appt_id}/cancel", headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["cancelled"] is True


def test_full_day_block_over_http(api, session, worker, client_user, booking_day):
    resp = api.post(
        "/admin/blocks",
        json={"mode": "fullday", "start_date": str(booking_day), "days": 2},
        headers=auth_headers(worker),
    )
    assert resp.status_code == 201
    blocks = resp.json()
    assert [b["kind"] for b in blocks] == ["blocked_time", "blocked_time"]

    availability = api.get(
        f"/workers/{worker.id}/availability",
        params={"date": str(booking_day)},
        headers=auth_headers(client_user),
    ).json()
    assert all(s["classification"] == "booked" for s in availability["slots"])

    unblocked = api.post(f"/admin/appointments/{blocks[0]['id']}/cancel", headers=auth_headers(worker))
    assert unblocked.json()["deleted"] is True


def test_block_conflict_reports_partial_progress(api, session, worker, client_user, booking_day):
    second_day = booking_day + timedelta(days=1)
    api.post(
        "/appointments",
        json=client_payload(session, worker, second_day),
        headers=auth_headers(client_user),
    )

    resp = api.post(
        "/admin/blocks",
        json={"mode": "fullday", "start_date": str(booking_day), "days": 2},
        headers=auth_headers(worker),
    )

    assert resp.status_code == 409
    assert resp.json()["details"] == {"failed_date": str(second_day), "blocked_dates": [str(booking_day)]}


def test_notifications(api, engine, session, client_user, worker, booking_day):
    app.dependency_overrides[get_publisher] = lambda: DatabaseNotificationPublisher(engine)
    api.post(
        "/appointments",
        json=client_payload(session, worker, booking_day),
        headers=auth_headers(client_user),
    )
    headers = auth_headers(worker)

    unread = api.get("/notifications", params={"unread_only": True}, headers=headers).json()
    assert len(unread) == 1
    assert unread[0]["kind"] == "created"

    read = api.post(f"/notifications/{unread[0]['id']}/read", headers=headers)
    assert read.json()["is_read"] is True
    assert api.get("/notifications", params={"unread_only": True}, headers=headers).json() == []

    assert api.post("/notifications/read-all", headers=headers).json() == {"success": True, "updated": 0}
    assert api.get("/notifications", headers=auth_headers(client_user)).status_code == 403
