# salon/crud/admin_logs.py

from typing import Optional

from sqlmodel import Session, select

from salon.models import AdminActivityLog


def create_admin_log(
    session: Session,
    *,
    admin_id: int,
    action_type: str,
    details: Optional[dict] = None,
) -> AdminActivityLog:
    entry = AdminActivityLog(admin_id=admin_id, action_type=action_type, details=details)
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry


def list_admin_logs(session: Session, admin_id: int, limit: int = 50):
    stmt = (
        select(AdminActivityLog)
        .where(AdminActivityLog.admin_id == admin_id)
        .order_by(AdminActivityLog.created_at.desc(), AdminActivityLog.id.desc())
        .limit(limit)
    )
    return session.exec(stmt).all()
