"""Database engine and session factory construction."""
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.config.settings import Settings, settings


def build_engine(config: Optional[Settings] = None, **overrides) -> Engine:
    """Create the SQLAlchemy engine for the configured database."""
    config = config or settings
    options = {
        "echo": config.DATABASE_ECHO,
        "pool_pre_ping": True,
    }
    if config.is_sqlite():
        # Writers wait on the database lock instead of failing immediately
        options["connect_args"] = {"check_same_thread": False, "timeout": 30}
    else:
        options["pool_size"] = config.DB_POOL_SIZE
        options["max_overflow"] = config.DB_POOL_OVERFLOW
    options.update(overrides)
    return create_engine(config.get_database_url(), **options)


def build_session_factory(bind: Engine) -> sessionmaker:
    """
    Sessions do not expire loaded objects on commit so that committed
    bookings can be rendered after the transaction ends.
    """
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)
