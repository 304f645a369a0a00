# salon/routers/auth_routes.py

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from salon.auth import authenticate, create_access_token
from salon.core.logging import get_logger
from salon.db import get_session
from salon.schemas import Token

logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


# OAuth2 form: the email goes in "username"
@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = authenticate(session, form_data.username, form_data.password)
    if user is None:
        logger.info("login_failed", email=form_data.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("login_succeeded", user_id=user.id, role=user.role)
    return Token(access_token=create_access_token({"sub": user.email, "role": user.role}))
