"""
Global Exception Handling and Request Middleware for Resume AI API
"""
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils import config
from app.utils.exceptions import ResumeAIBaseException, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def create_error_response(request_id: str, status_code: int, detail: Any, headers: dict = None) -> JSONResponse:
    """Create standardized error response"""

    if isinstance(detail, str):
        detail = {"message": detail}
    elif not isinstance(detail, dict):
        detail = {"message": str(detail)}

    error_response = {
        "success": False,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail
    }

    response_headers = {"X-Request-ID": request_id}
    if headers:
        response_headers.update(headers)

    return JSONResponse(
        status_code=status_code,
        content=error_response,
        headers=response_headers
    )


async def resume_ai_exception_handler(request: Request, exc: ResumeAIBaseException) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())

    logger.error(
        f"Custom exception in {request.method} {request.url.path}: {exc.message}",
        extra={
            "request_id": request_id,
            "exception_type": exc.__class__.__name__,
            "error_code": exc.error_code,
            "details": exc.details,
            "cause": str(exc.cause) if exc.cause else None,
        }
    )

    http_exc = map_to_http_exception(exc)
    return create_error_response(request_id, http_exc.status_code, http_exc.detail, http_exc.headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ResumeAIBaseException, resume_ai_exception_handler)


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: request IDs and a last-resort 500"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)

            logger.info(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                }
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
                extra={
                    "request_id": request_id,
                    "exception_type": exc.__class__.__name__,
                    "traceback": traceback.format_exc(),
                },
                exc_info=True
            )

            # Don't expose internal errors
            error_detail = {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            }

            return create_error_response(request_id, 500, error_detail)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', None) or str(uuid.uuid4())

        logger.debug(
            f"Request details: {request.method} {request.url}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)
            processing_time = time.time() - start_time

            logger.info(
                f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "processing_time": processing_time,
                }
            )

            return response

        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} after {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time,
                    "exception": str(exc)
                }
            )
            raise


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for performance monitoring"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', None) or str(uuid.uuid4())

        response = await call_next(request)

        processing_time = time.time() - start_time

        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold,
                }
            )
        else:
            logger.debug(
                f"Request performance: {request.method} {request.url.path} - {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time
                }
            )

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"

        return response


class VersionHeaderMiddleware(BaseHTTPMiddleware):
    """Tags every response with the deployed version"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-App-Version"] = config.APP_VERSION
        return response
