"""
Base class for the engine's booking services.

Holds the primary repository, the session whose transaction the service
owns, and a per-service logger. Persistence failures reaching a service
are turned into ``STORAGE_ERROR`` results; nothing is committed for them.
"""

from abc import ABC
from typing import Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import BookingConflictError, StorageError
from app.core.logging import get_logger
from app.services.base.service_result import ErrorCode, ErrorSeverity, ServiceError, ServiceResult

TRepo = TypeVar("TRepo")


class BaseService(ABC, Generic[TRepo]):
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Failed persistence mapped to ServiceResult failures
    - Commit and rollback owned by the service, not the repository
    """

    def __init__(self, repository: TRepo, db_session: Session):
        self.repository: TRepo = repository
        self.db: Session = db_session
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Error handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[str] = None,
    ) -> ServiceResult:
        """
        Log ``exception`` and return the failure result for ``operation``.

        Args:
            exception: The caught exception
            operation: What was being done, e.g. "create booking"
            entity_ref: Booking or staff id involved, if any
        """
        code = self._error_code_for(exception)
        self._logger.error(
            f"Error during {operation}: {exception}",
            exc_info=True,
            extra={
                "operation": operation,
                "entity_ref": entity_ref,
                "exception_type": type(exception).__name__,
                "error_code": code.value,
            },
        )

        details = {"operation": operation, "entity_ref": entity_ref}
        if isinstance(exception, StorageError):
            details["table"] = exception.details.get("table")

        return ServiceResult.failure(
            ServiceError(
                code=code,
                message=f"Failed to {operation}",
                details=details,
                severity=ErrorSeverity.CRITICAL,
            )
        )

    @staticmethod
    def _error_code_for(exception: Exception) -> ErrorCode:
        if isinstance(exception, BookingConflictError):
            return ErrorCode.BOOKING_CONFLICT
        if isinstance(exception, (StorageError, SQLAlchemyError)):
            return ErrorCode.STORAGE_ERROR
        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _commit(self) -> None:
        """Commit the service's transaction; a failed commit is rolled back and raised as StorageError."""
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self._logger.error(f"Commit failed: {e}", exc_info=True)
            self._rollback()
            raise StorageError("Commit failed", operation="commit") from e

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            # The original failure is the one callers report
            self._logger.warning(f"Rollback failed: {e}")
