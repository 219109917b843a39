"""
Database Configuration
Engine and session factory for the artistic job table.

SQLite is fine for a single host (API plus a few RQ worker processes sharing
one file); use PostgreSQL when workers run on other machines.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from artqr.core.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, pool_size=10, max_overflow=20)

    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 15})

    @event.listens_for(sqlite_engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        # Concurrent claims from several worker processes would otherwise hit "database is locked"
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=15000")
        cursor.close()

    return sqlite_engine


engine = create_db_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create the job table if missing."""
    from artqr.models import ArtisticJob  # noqa: F401  (registers the table)

    try:
        Base.metadata.create_all(bind=bind or engine)
    except SQLAlchemyError as e:
        # Read-only deployments run against a pre-migrated schema
        logger.warning(f"[Database] Could not create tables, using existing schema: {e}")
