# salon/routers/notifications_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from salon.auth import get_current_user
from salon.crud import notifications as crud
from salon.db import get_session
from salon.deps import ADMIN_ROLES, require_role
from salon.schemas import NotificationPublic

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


@router.get("", response_model=List[NotificationPublic])
def list_my_notifications(
    unread_only: bool = False,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *ADMIN_ROLES)
    return crud.list_notifications(session, current_user["id"], unread_only=unread_only)


@router.post("/{notification_id}/read", response_model=NotificationPublic)
def mark_notification_read(
    notification_id: int,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *ADMIN_ROLES)
    notification = crud.mark_read(session, current_user["id"], notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/read-all")
def mark_all_notifications_read(
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    require_role(current_user, *ADMIN_ROLES)
    return {"success": True, "updated": crud.mark_all_read(session, current_user["id"])}
