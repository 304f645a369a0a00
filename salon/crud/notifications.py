# salon/crud/notifications.py

from typing import Optional

from sqlmodel import Session, select

from salon.models import Notification


def create_notification(
    session: Session,
    *,
    recipient_id: int,
    appointment_id: Optional[int],
    kind: str,
    message: str,
    cancellation_reason: Optional[str] = None,
) -> Notification:
    notification = Notification(
        recipient_id=recipient_id,
        appointment_id=appointment_id,
        kind=kind,
        message=message,
        cancellation_reason=cancellation_reason,
    )
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def list_notifications(session: Session, recipient_id: int, unread_only: bool = False, limit: int = 50):
    stmt = select(Notification).where(Notification.recipient_id == recipient_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read == False)  # noqa: E712
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return session.exec(stmt).all()


def mark_read(session: Session, recipient_id: int, notification_id: int) -> Optional[Notification]:
    notification = session.get(Notification, notification_id)
    if notification is None or notification.recipient_id != recipient_id:
        return None
    notification.is_read = True
    session.add(notification)
    session.commit()
    session.refresh(notification)
    return notification


def mark_all_read(session: Session, recipient_id: int) -> int:
    unread = list_notifications(session, recipient_id, unread_only=True, limit=10_000)
    for notification in unread:
        notification.is_read = True
        session.add(notification)
    session.commit()
    return len(unread)
