# pyright: reportMissingTypeStubs=false
"""
Engine, session factory and the request-scoped session dependency.

Routes receive a session from `get_db` and wrap their writes in a
TransactionScope; the dependency only guarantees the session is rolled back
and closed when a request fails.
"""

import logging
from typing import Any, Dict, Generator

from fastapi import HTTPException
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS
from core.exceptions import BookingError

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> Dict[str, Any]:
    """Dialect-specific engine options."""
    if url.startswith("sqlite"):
        # Sessions are handed across threads by the FastAPI threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": DB_POOL_RECYCLE_SECONDS,
    }


# Create SQLAlchemy engine with optimized settings
engine = create_engine(
    DATABASE_URL,
    echo=False,          # Disable SQL logging
    future=True,         # Use SQLAlchemy 2.0 style
    **_engine_kwargs(DATABASE_URL),
)

# Create configured SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)


# Create Base class for declarative models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# SQLAlchemy event listeners to automatically set created_at and updated_at using business timezone
@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert using business timezone."""
    # Import here to avoid circular import
    from utils.datetime_utils import ist_now
    now = ist_now()
    for column_name in ("created_at", "updated_at"):
        if hasattr(mapper, "columns") and column_name in mapper.columns:  # type: ignore
            if getattr(target, column_name, None) is None:  # type: ignore
                setattr(target, column_name, now)  # type: ignore


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update using business timezone."""
    from utils.datetime_utils import ist_now
    if hasattr(mapper, "columns") and "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", ist_now())  # type: ignore


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session for FastAPI routes.

    Domain errors (BookingError) and HTTPExceptions roll back quietly; anything
    else is logged before the rollback.
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except (HTTPException, BookingError):
        # Don't log expected business errors as errors
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()

