"""
Custom Exception Classes for Resume AI API
"""
from typing import Dict, Any
from fastapi import HTTPException


class ResumeAIBaseException(Exception):
    """Base exception for Resume AI API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class SchemaViolation(ResumeAIBaseException):
    """Raised when a request body or AI output does not match its declared shape"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)[:200]
        self.field = field
        super().__init__(message, error_code="SCHEMA_VIOLATION", details=details, **kwargs)


class MissingCredential(ResumeAIBaseException):
    """Raised when no usable AI credential exists for the requested tier"""

    def __init__(self, message: str = None, service: str = None, model_name: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if service:
            details['service'] = service
        if model_name:
            details['model_name'] = model_name
        details['hint'] = "Add an API key for this provider in your settings, or upgrade your plan."
        message = message or f"No API key configured for {service or 'the requested provider'}"
        super().__init__(message, error_code="MISSING_CREDENTIAL", details=details, **kwargs)


class RateLimitExceeded(ResumeAIBaseException):
    """Raised when an identity exhausted its request quota for the current window"""

    def __init__(self, message: str = "Rate limit exceeded. Please try again later.",
                 limit: int = None, window: int = None, retry_after: int = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if limit is not None:
            details['limit'] = limit
        if window is not None:
            details['window_seconds'] = window
        if retry_after is not None:
            details['retry_after'] = retry_after
        self.retry_after = retry_after
        super().__init__(message, error_code="RATE_LIMIT_EXCEEDED", details=details, **kwargs)


class GenerationFailure(ResumeAIBaseException):
    """Raised when the external AI call errors or returns ungradable content"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="GENERATION_FAILURE", details=details, **kwargs)


class PersistenceFailure(ResumeAIBaseException):
    """Raised when the record store rejects a read or write"""

    def __init__(self, message: str = "Failed to save changes. Please try again.",
                 operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="PERSISTENCE_FAILURE", details=details, **kwargs)


class Unauthenticated(ResumeAIBaseException):
    """Raised when an action requires a session and none is present"""

    def __init__(self, message: str = "User not authenticated", **kwargs):
        super().__init__(message, error_code="UNAUTHENTICATED", **kwargs)


class NotFoundError(ResumeAIBaseException):
    """Raised when a requested record does not exist for the caller"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', None) or {}
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


STATUS_CODE_MAPPING = {
    SchemaViolation: 400,
    MissingCredential: 400,
    Unauthenticated: 401,
    NotFoundError: 404,
    RateLimitExceeded: 429,
    PersistenceFailure: 500,
    GenerationFailure: 502,
}


def status_code_for(exc: ResumeAIBaseException) -> int:
    return STATUS_CODE_MAPPING.get(type(exc), 500)


def public_details(exc: ResumeAIBaseException) -> Dict[str, Any]:
    """Details safe to hand back to a client"""
    if isinstance(exc, PersistenceFailure):
        # collection/operation names stay in the server log
        return {}
    return exc.details


def map_to_http_exception(exc: ResumeAIBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""
    detail = {
        "error_code": exc.error_code,
        "message": exc.message,
        "details": public_details(exc),
    }
    headers = None
    if isinstance(exc, RateLimitExceeded) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return HTTPException(status_code=status_code_for(exc), detail=detail, headers=headers)


class ExceptionContext:
    """Context manager that turns raw driver errors into PersistenceFailure"""

    def __init__(self, operation: str, collection: str = None, logger=None, **context):
        self.operation = operation
        self.collection = collection
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        # Re-raise custom exceptions as-is
        if isinstance(exc_val, ResumeAIBaseException):
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        raise PersistenceFailure(
            operation=self.operation,
            collection=self.collection,
            details=dict(self.context),
            cause=exc_val
        ) from exc_val
