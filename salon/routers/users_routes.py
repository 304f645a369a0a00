# salon/routers/users_routes.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from salon.db import get_session
from salon.models import User
from salon.schemas import AdminAction, ClientRegister, UserCreate, UserPublic, UserRole, WorkerPublic
from salon.auth import find_user, get_current_user, hash_password
from salon.deps import ADMIN_ROLES, require_role
from salon.services.activity import log_admin_activity

router = APIRouter(
    tags=["users"],
)


def _create_user(session: Session, user: ClientRegister, role: UserRole) -> User:
    if find_user(session, user.email) is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    db_user = User(
        email=user.email,
        password_hash=hash_password(user.password),
        role=role.value,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    return db_user


@router.get("/me", response_model=UserPublic)
def me(current_user: dict = Depends(get_current_user)):
    return current_user


# Self-service sign-up always creates a client
@router.post("/users", status_code=201, response_model=UserPublic)
def register_client(
    user: ClientRegister,
    session: Session = Depends(get_session),
):
    return _create_user(session, user, UserRole.client)


@router.post("/admin/users", status_code=201, response_model=UserPublic)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
    current_user: dict = Depends(get_current_user),
):
    # Admins register clients; only head admins add staff
    require_role(current_user, *ADMIN_ROLES)
    if user.role != UserRole.client:
        require_role(current_user, "head_admin")
    db_user = _create_user(session, user, user.role)
    if db_user.role == UserRole.client.value:
        log_admin_activity(
            session,
            current_user["id"],
            AdminAction.register_client,
            {"user_id": db_user.id, "client_name": f"{db_user.first_name} {db_user.last_name}", "email": db_user.email},
        )
    return db_user


@router.get("/workers", response_model=List[WorkerPublic])
def list_workers(session: Session = Depends(get_session)):
    workers = session.exec(
        select(User)
        .where(User.role.in_(ADMIN_ROLES))
        .order_by(User.first_name, User.last_name)
    ).all()
    return workers
