# salon/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlmodel import Session

from salon.config import settings
from salon.core.logging import correlation_middleware, get_logger, setup_logging
from salon.data import DEFAULT_SERVICES
from salon.db import create_db_and_tables, engine, seed_services
from salon.errors import BookingError
from salon.routers import (
    admin_routes,
    appointments_routes,
    auth_routes,
    notifications_routes,
    services_routes,
    users_routes,
    workers_routes,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    create_db_and_tables()
    if settings.SEED_SERVICES:
        with Session(engine) as session:
            seeded = seed_services(session, DEFAULT_SERVICES)
        if seeded:
            logger.info("services_seeded", count=seeded)
    logger.info("startup_complete", env=settings.APP_ENV)
    yield


app = FastAPI(title="Salon Booking API", lifespan=lifespan)
app.middleware("http")(correlation_middleware)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    content = {"detail": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(services_routes.router)
app.include_router(workers_routes.router)
app.include_router(appointments_routes.router)
app.include_router(admin_routes.router)
app.include_router(notifications_routes.router)
