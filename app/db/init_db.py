# app/db/init_db.py
"""Database initialization utilities."""
import logging

from sqlalchemy.engine import Engine

from app.db.base import Base

logger = logging.getLogger(__name__)


def init_db(bind: Engine) -> None:
    """
    Create all tables that do not exist yet.

    Note: This is suitable for development/testing only.
    For production, use migrations instead.
    """
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})
