"""
Custom Exceptions for the Spa Booking Engine

This module defines custom exception classes used throughout the application
for better error handling and debugging.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Database errors
    STORAGE_ERROR = "STORAGE_ERROR"

    # Business logic errors
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    ROOM_UNAVAILABLE = "ROOM_UNAVAILABLE"
    STAFF_UNAVAILABLE = "STAFF_UNAVAILABLE"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"

    # Cache errors
    CACHE_ERROR = "CACHE_ERROR"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Application Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when data validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400
    ):
        details = dict(details or {})
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, status_code)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


class CacheError(BaseAppException):
    """Exception raised when the availability cache backend fails"""

    def __init__(self, message: str = "Cache operation failed"):
        super().__init__(message, ErrorCode.CACHE_ERROR, status_code=500)


# ========================================
# Database Exceptions
# ========================================

class StorageError(BaseAppException):
    """Exception raised when persistence fails; nothing was written"""

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        table: Optional[str] = None,
    ):
        details = {
            "operation": operation,
            "table": table
        }
        super().__init__(message, ErrorCode.STORAGE_ERROR, details, 500)


# ========================================
# Business Logic Exceptions
# ========================================

class BookingError(BaseAppException):
    """Base class for booking-related exceptions"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 409
    ):
        super().__init__(message, error_code, details, status_code)


class BookingConflictError(BookingError):
    """Exception raised when a booking write lost against a concurrent booking"""

    def __init__(
        self,
        message: str = "Booking conflict detected",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCode.BOOKING_CONFLICT, details)


class RoomUnavailableError(BookingError):
    """Exception raised when no compliant room is free"""

    def __init__(
        self,
        message: str = "No room is available",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCode.ROOM_UNAVAILABLE, details)


class StaffUnavailableError(BookingError):
    """Exception raised when no eligible staff member is free"""

    def __init__(
        self,
        message: str = "No staff member is available",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, ErrorCode.STAFF_UNAVAILABLE, details)


class InvalidStatusTransitionError(BookingError):
    """Exception raised when a booking status change is not allowed"""

    def __init__(
        self,
        current_status: str,
        requested_status: str,
        message: Optional[str] = None,
    ):
        message = message or f"Cannot change booking status from {current_status} to {requested_status}"
        details = {
            "current_status": current_status,
            "requested_status": requested_status,
        }
        super().__init__(message, ErrorCode.INVALID_STATUS_TRANSITION, details)
