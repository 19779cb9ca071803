"""
Database configuration and session management.
"""
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

# Engine and session factory are created on first use so that importing
# this module never opens a connection
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        from sportsync.core.config import settings
        _engine = create_engine(
            settings.DATABASE_URL,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,  # Verify connections before using
            echo=os.getenv("SQL_ECHO", "false").lower() == "true"
        )
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a session for one batch job.

    Usage:
    ```python
    with session_scope() as db:
        orchestrator = SyncOrchestrator(db, ...)
    ```
    """
    get_engine()
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    from sportsync.models.models import Base
    # checkfirst=True will only create tables that don't exist
    Base.metadata.create_all(bind=get_engine(), checkfirst=True)
