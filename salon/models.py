# salon/models.py

from typing import Optional
from datetime import datetime, timezone, date as Date

from sqlalchemy import Column, DateTime, Index, text
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: str  # client, admin or head_admin
    first_name: str
    last_name: str
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True)
    price: float
    duration: int  # minutes


class Appointment(SQLModel, table=True):
    __table_args__ = (
        # No double booking: one scheduled row per worker/date/start
        Index(
            "uq_appointment_slot",
            "worker_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    worker_id: int = Field(foreign_key="user.id", index=True)
    worker: str
    appointment_date: Date = Field(index=True)
    appointment_time: str  # "HH:MM", business-local
    duration: int  # minutes

    kind: str = "appointment"  # appointment or blocked_time
    status: str = "scheduled"  # scheduled or cancelled

    service: str
    notes: Optional[str] = None

    first_name: str
    last_name: str
    phone: Optional[str] = None
    email: str

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    is_rescheduled: bool = False
    cancelled_by: Optional[str] = None  # client or admin
    cancelled_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    cancellation_reason: Optional[str] = None

    @property
    def is_blocked_time(self) -> bool:
        return self.kind == "blocked_time"


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    recipient_id: int = Field(foreign_key="user.id", index=True)
    appointment_id: Optional[int] = None
    kind: str  # created, cancelled or rescheduled
    message: str
    cancellation_reason: Optional[str] = None
    is_read: bool = False
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class AdminActivityLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    admin_id: int = Field(foreign_key="user.id", index=True)
    # register_client, create_appointment, cancel_appointment or reschedule_appointment
    action_type: str
    details: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
