# salon/routers/services_routes.py

from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from salon.db import get_session
from salon.models import Service
from salon.schemas import ServicePublic

router = APIRouter(
    tags=["services"],
)


@router.get("/services", response_model=List[ServicePublic])
def list_services(session: Session = Depends(get_session)):
    return session.exec(select(Service).order_by(Service.duration, Service.name)).all()
