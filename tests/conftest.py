"""
Shared fixtures: in-memory database, seeded users and services, auth headers.
"""
import os

# Settings are read at import time; keep tests off the on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_SERVICES", "false")

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from salon.auth import create_access_token, hash_password
from salon.data import DEFAULT_SERVICES
from salon.db import get_session, seed_services
from salon.deps import get_publisher, get_rate_limiter
from salon.core.timegrid import business_today
from salon.main import app
from salon.models import User
from salon.services.limits import InMemoryRateLimiter

PASSWORD = "correct-horse"
# bcrypt is slow; hash once per run
PASSWORD_HASH = hash_password(PASSWORD)


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, recipient_id, appointment_id, kind, message, cancellation_reason=None):
        self.events.append(
            {
                "recipient_id": recipient_id,
                "appointment_id": appointment_id,
                "kind": kind,
                "message": message,
                "cancellation_reason": cancellation_reason,
            }
        )


class FailingPublisher:
    def publish(self, *args, **kwargs):
        raise RuntimeError("notification backend down")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        seed_services(session, DEFAULT_SERVICES)
        yield session


def make_user(session, email, role, first_name="Ana", last_name="Petrovic", phone=None):
    user = User(
        email=email,
        password_hash=PASSWORD_HASH,
        role=role,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def worker(session):
    return make_user(session, "jelena@salon.test", "admin", "Jelena", "Jovanovic")


@pytest.fixture
def other_worker(session):
    return make_user(session, "marko@salon.test", "admin", "Marko", "Markovic")


@pytest.fixture
def head_admin(session):
    return make_user(session, "boss@salon.test", "head_admin", "Milica", "Nikolic")


@pytest.fixture
def client_user(session):
    return make_user(session, "client@example.com", "client", "Ivana", "Ilic", "+381641234567")


@pytest.fixture
def other_client(session):
    return make_user(session, "other@example.com", "client", "Petar", "Peric")


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def booking_day():
    # A week ahead keeps "past slot" rules out of the way
    return business_today() + timedelta(days=7)


@pytest.fixture
def api(engine, session, publisher):
    def override_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_publisher] = lambda: publisher
    app.dependency_overrides[get_rate_limiter] = lambda: InMemoryRateLimiter()
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user):
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}
