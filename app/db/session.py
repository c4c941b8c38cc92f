"""
Database session management utilities.

This file provides database connection functionality for the application.
"""

from typing import Generator

from sqlalchemy.orm import Session

# Re-export SessionLocal from base
from app.db.base import SessionLocal, Base, engine


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session.

    Yields:
        SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables. Schema migrations are handled elsewhere."""
    import app.models  # noqa: F401  registers models on Base.metadata

    Base.metadata.create_all(bind=engine)
