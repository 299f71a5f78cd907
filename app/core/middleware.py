# app/core/middleware.py
"""
Core middleware registration for the FastAPI application.

Every request gets a request id bound to the logging context, a timing
header and a completion log line; failures escaping a route are logged
with the request id before the exception handlers render them.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.logging import get_logger, request_id as request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id for the duration of the request and times it.

    An upstream ``X-Request-ID`` is reused; otherwise a UUID is generated.
    The id and the processing time are returned as response headers.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            process_time = time.perf_counter() - start_time
            logger.info(
                "Request completed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "process_time": f"{process_time:.4f}s",
                },
            )
        finally:
            request_id_var.reset(token)

        response.headers[self.header_name] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs exceptions escaping a route and 5xx responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request processing failed: {exc}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise

        if response.status_code >= 500:
            logger.warning(
                f"Request returned error status {response.status_code}",
                extra={"method": request.method, "path": request.url.path},
            )
        return response


def register_middlewares(app: FastAPI) -> None:
    """
    Register the core middlewares.

    The last middleware added runs first, so the request id is bound
    before errors are logged.
    """
    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)
    logger.info("Core middlewares registered", extra={"count": 2})


__all__ = [
    "RequestContextMiddleware",
    "ErrorLoggingMiddleware",
    "register_middlewares",
]
