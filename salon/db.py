# salon/db.py

from sqlmodel import SQLModel, Session, create_engine, select

from salon.config import settings
from salon.models import Service

# SQLite needs check_same_thread=False for FastAPI's threadpool
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    connect_args=connect_args,
)


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)


def seed_services(session: Session, catalogue) -> int:
    """Insert the default catalogue into an empty service table."""
    if session.exec(select(Service)).first() is not None:
        return 0
    for name, price, duration in catalogue:
        session.add(Service(name=name, price=price, duration=duration))
    session.commit()
    return len(catalogue)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
