# salon/services/notifications.py
"""
Outbound booking events.

The booking flow calls ``notify`` after its own commit. Delivery is fire and
forget: a failing publisher is logged and never reaches the caller.
"""
from typing import Optional, Protocol

from sqlmodel import Session

from salon.core.logging import get_logger
from salon.crud.notifications import create_notification

logger = get_logger(__name__)


class EventPublisher(Protocol):
    def publish(
        self,
        recipient_id: int,
        appointment_id: Optional[int],
        kind: str,
        message: str,
        cancellation_reason: Optional[str] = None,
    ) -> None: ...


class DatabaseNotificationPublisher:
    """Stores notifications in their own session, apart from the booking's."""

    def __init__(self, engine):
        self.engine = engine

    def publish(self, recipient_id, appointment_id, kind, message, cancellation_reason=None):
        with Session(self.engine) as session:
            create_notification(
                session,
                recipient_id=recipient_id,
                appointment_id=appointment_id,
                kind=kind,
                message=message,
                cancellation_reason=cancellation_reason,
            )


def notify(
    publisher: Optional[EventPublisher],
    *,
    recipient_id: int,
    appointment_id: Optional[int],
    kind: str,
    message: str,
    cancellation_reason: Optional[str] = None,
) -> bool:
    if publisher is None:
        return False
    try:
        publisher.publish(recipient_id, appointment_id, kind, message, cancellation_reason)
    except Exception as e:
        logger.warning(
            "notification_failed",
            recipient_id=recipient_id,
            appointment_id=appointment_id,
            kind=kind,
            error=str(e),
        )
        return False
    logger.debug("notification_sent", recipient_id=recipient_id, appointment_id=appointment_id, kind=kind)
    return True
