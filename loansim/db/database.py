"""
Database connection and session management.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool, StaticPool

from loansim.config import get_settings
from loansim.db.models import Base

logger = logging.getLogger(__name__)
settings = get_settings()


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine suited to the database backend.

    Postgres runs without a pool (serverless hosts close idle connections);
    in-memory SQLite shares one connection so every session sees the tables.
    """
    if database_url.startswith("postgresql"):
        return create_engine(database_url, poolclass=NullPool)
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False},  # Needed for SQLite
    )


engine = create_db_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine):
    """Create the simulation tables if they do not exist."""
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database ready at {bind.url.render_as_string(hide_password=True)}")


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions (for use outside FastAPI)."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
