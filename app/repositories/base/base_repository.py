"""
Base repository with standardized reads and error handling.

Provides the foundation for all domain repositories. Persistence failures
surface as ``StorageError`` after the session has been rolled back, and
writes are left to the conditional statements of each store.
"""

from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.models.base import BaseModel
from app.core.logging import get_logger
from app.core.exceptions import StorageError

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with standardized operations.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # ==================== Read Operations ====================

    def find_by_id(self, id: str) -> Optional[ModelType]:
        """
        Find entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None
        """
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            raise StorageError(
                f"Find {self.model.__name__} by ID failed",
                operation="find_by_id",
                table=self.model.__tablename__,
            ) from e

    def _all(self, stmt) -> List[ModelType]:
        try:
            return list(self.db.scalars(stmt).unique().all())
        except SQLAlchemyError as e:
            raise StorageError(
                f"Query on {self.model.__name__} failed",
                operation="select",
                table=self.model.__tablename__,
            ) from e
