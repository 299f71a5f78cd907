"""SQLAlchemy Base class with every model registered."""
from app.models import Base  # noqa: F401

__all__ = ["Base"]
