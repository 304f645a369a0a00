# salon/schemas.py

import re
from datetime import date, datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from salon.data import MAX_FULL_DAY_BLOCK_DAYS

NAME_PATTERN = r"^[a-zA-Z\s'-]+$"
PHONE_RE = re.compile(r"^\+?[0-9]\d{6,14}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


def _parse_date(value):
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_RE.match(value):
        raise ValueError("Invalid date format. Use YYYY-MM-DD")
    return date.fromisoformat(value)


def _parse_time(value):
    if not isinstance(value, str) or not TIME_RE.match(value):
        raise ValueError("Invalid time format. Use HH:MM")
    hours, minutes = int(value[0:2]), int(value[3:5])
    if hours > 23 or minutes > 59:
        raise ValueError("Invalid time format. Use HH:MM")
    return value[:5]


def _clean_phone(value):
    # Empty means "no phone"; spaces, dashes and parentheses are ignored
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("Invalid phone number format")
    cleaned = re.sub(r"[\s\-()]", "", value)
    if not PHONE_RE.match(cleaned):
        raise ValueError("Invalid phone number format")
    return cleaned


BusinessDate = Annotated[date, BeforeValidator(_parse_date)]
SlotTime = Annotated[str, BeforeValidator(_parse_time)]
Phone = Annotated[Optional[str], BeforeValidator(_clean_phone)]
PersonName = Annotated[str, Field(min_length=1, max_length=100, pattern=NAME_PATTERN)]
Notes = Optional[Annotated[str, Field(max_length=1000)]]


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRole(str, Enum):
    client = "client"
    admin = "admin"
    head_admin = "head_admin"


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    cancelled = "cancelled"


class AppointmentKind(str, Enum):
    appointment = "appointment"
    blocked_time = "blocked_time"


class NotificationKind(str, Enum):
    created = "created"
    cancelled = "cancelled"
    rescheduled = "rescheduled"


class BlockMode(str, Enum):
    specific = "specific"
    fullday = "fullday"


class AdminAction(str, Enum):
    register_client = "register_client"
    create_appointment = "create_appointment"
    cancel_appointment = "cancel_appointment"
    reschedule_appointment = "reschedule_appointment"


class UserPublic(BaseModel):
    id: int
    email: str
    role: UserRole
    first_name: str
    last_name: str
    phone: Optional[str] = None


class WorkerPublic(BaseModel):
    id: int
    first_name: str
    last_name: str


class ClientRegister(BaseModel):
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=8, max_length=72)
    first_name: PersonName
    last_name: PersonName
    phone: Phone = None


class UserCreate(ClientRegister):
    role: UserRole = UserRole.client


class ServicePublic(BaseModel):
    id: int
    name: str
    price: float
    duration: int


class ClientAppointmentCreate(BaseModel):
    worker_id: int
    appointment_date: BusinessDate
    appointment_time: SlotTime
    service_ids: List[int]
    first_name: Optional[PersonName] = None
    last_name: Optional[PersonName] = None
    phone: Phone = None
    notes: Notes = None


class AdminAppointmentCreate(BaseModel):
    worker_id: int
    appointment_date: BusinessDate
    appointment_time: SlotTime
    service_ids: List[int]
    client_first_name: PersonName
    client_last_name: PersonName
    client_phone: Phone = None
    notes: Notes = None


class AppointmentUpdate(BaseModel):
    appointment_date: Optional[BusinessDate] = None
    appointment_time: Optional[SlotTime] = None
    service_ids: Optional[List[int]] = None
    notes: Notes = None


class ClientCancel(BaseModel):
    reason: str = Field(min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Cancellation reason is required")
        return value.strip()


class AdminCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class BlockCreate(BaseModel):
    mode: BlockMode = BlockMode.specific
    worker_id: Optional[int] = None  # defaults to the acting admin
    start_date: BusinessDate
    start_time: Optional[SlotTime] = None
    duration: Optional[int] = None
    days: int = Field(default=1, ge=1, le=MAX_FULL_DAY_BLOCK_DAYS)
    notes: Notes = None


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    worker_id: int
    worker: str
    appointment_date: date
    appointment_time: str
    duration: int
    kind: AppointmentKind
    status: AppointmentStatus
    service: str
    notes: Optional[str] = None
    first_name: str
    last_name: str
    phone: Optional[str] = None
    email: str
    created_at: datetime
    is_rescheduled: bool
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class CancelResult(BaseModel):
    success: bool = True
    appointment_id: int
    cancelled: bool = False
    deleted: bool = False
    message: str


class SlotPublic(BaseModel):
    slot_time: str
    classification: str
    past: bool = False


class AvailabilityResponse(BaseModel):
    worker_id: int
    date: date
    duration: int
    slots: List[SlotPublic]
    occupied_slots: List[str]


class NotificationPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: Optional[int] = None
    kind: NotificationKind
    message: str
    cancellation_reason: Optional[str] = None
    is_read: bool
    created_at: datetime


class AdminActivityPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action_type: AdminAction
    details: Optional[dict] = None
    created_at: datetime
