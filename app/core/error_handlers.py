"""
Exception handlers for the FastAPI application.

Every error leaves the API as ``{"error": {"message", "code", "details", "type"}}``
with the status code carried by the exception.
"""
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import BaseAppException, ErrorCode
from app.core.logging import get_logger

logger = get_logger(__name__)


def _error_body(code: str, message: str, details: Dict[str, Any], error_type: str) -> Dict[str, Any]:
    return {
        "error": {
            "message": message,
            "code": code,
            "details": details,
            "type": error_type,
        }
    }


async def handle_application_exception(request: Request, exc: BaseAppException) -> JSONResponse:
    """Render custom application exceptions"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"Application exception: {exc.error_code.value} - {exc.message}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation errors as 400 responses"""
    field_errors: Dict[str, list] = {}
    for error in exc.errors():
        field_path = ".".join(str(part) for part in error["loc"] if part != "body")
        field_errors.setdefault(field_path or "body", []).append(error["msg"])

    logger.info(
        f"Validation error: {len(field_errors)} field(s) failed validation",
        extra={"path": request.url.path, "method": request.method}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            ErrorCode.VALIDATION_ERROR.value,
            "Request validation failed",
            {"field_errors": field_errors},
            "ValidationError",
        ),
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Render unexpected exceptions without leaking internals"""
    logger.critical(
        f"Unexpected exception: {type(exc).__name__}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            ErrorCode.INTERNAL_ERROR.value,
            "An unexpected error occurred",
            {},
            "InternalServerError",
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAppException, handle_application_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_exception)
