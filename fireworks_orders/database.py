"""
Database engine, session factory and declarative base
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from fireworks_orders.config import settings


def _connect_args(url: str) -> dict:
    # Bound every statement so a slow catalog/party lookup cannot hang a request
    if url.startswith("postgresql"):
        timeout_ms = int(settings.LOOKUP_TIMEOUT_SECONDS * 1000)
        return {"options": f"-c statement_timeout={timeout_ms}"}
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None) -> None:
    """Create tables that do not exist yet."""
    # Register every model on Base.metadata
    from fireworks_orders import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
