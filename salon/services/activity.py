# salon/services/activity.py
"""
Admin activity trail.

Admin bookings, edits, cancellations and client registrations leave an
``AdminActivityLog`` row. Written after the booking's own commit; a failed
write is logged and rolled back, the admin action still stands.
"""
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from salon.core.logging import get_logger
from salon.crud.admin_logs import create_admin_log
from salon.schemas import AdminAction

logger = get_logger(__name__)


def log_admin_activity(
    session: Session,
    admin_id: int,
    action: AdminAction,
    details: Optional[dict] = None,
) -> bool:
    try:
        create_admin_log(session, admin_id=admin_id, action_type=action.value, details=details)
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning("admin_activity_log_failed", admin_id=admin_id, action_type=action.value, error=str(e))
        return False
    return True
