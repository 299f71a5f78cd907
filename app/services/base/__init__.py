"""
Service layer foundations: result types and the base service.
"""

from app.services.base.service_result import ErrorCode, ErrorSeverity, ServiceError, ServiceResult
from app.services.base.base_service import BaseService

__all__ = [
    "BaseService",
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
