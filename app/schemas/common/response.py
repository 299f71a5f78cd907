# --- File: app/schemas/common/response.py ---
"""
Standard API response wrappers.

The error shape mirrors ``BaseAppException.to_dict()`` and is used to
document error responses in the OpenAPI schema.
"""

from typing import Any, Dict, Union

from pydantic import BaseModel, Field

from app.schemas.common.base import BaseSchema

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "ERROR_RESPONSES",
]


class ErrorDetail(BaseModel):
    """Error detail information."""

    message: str = Field(..., description="Error message")
    code: str = Field(..., description="Application error code")
    details: Dict[str, Any] = Field(default_factory=dict, description="Requested resources and failed rule")
    type: str = Field(..., description="Exception type")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail


class HealthResponse(BaseSchema):
    """Service health."""

    status: str = Field(default="healthy")
    version: str
    environment: str
    database: str = Field(default="ok")
    cache: Union[Dict[str, Any], None] = None


ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation error"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Unavailable or conflicting resources"},
    500: {"model": ErrorResponse, "description": "Storage or internal error"},
}
