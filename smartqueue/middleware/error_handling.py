"""
Standardized Error Handling

Provides:
- API exception classes for different error types
- Mapping of smart queue domain errors to HTTP status codes
- Consistent error response format with correlation IDs
"""

from typing import Any, Dict, Optional, Tuple

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from smartqueue.core.exceptions import (
    RecomputeTimeoutError,
    SmartQueueError,
    StoreUnavailableError,
    TicketStoreError,
)
from smartqueue.core.utils import utcnow

logger = structlog.get_logger(__name__)

# ==================== Custom Exceptions ====================

class APIError(Exception):
    """Base class for API errors."""
    def __init__(
        self,
        message: str,
        error_code: str = None,
        status_code: int = 500,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(APIError):
    """Resource not found (404)."""
    def __init__(self, resource: str, identifier: str = None, **kwargs):
        message = f"{resource} not found"
        if identifier:
            message += f": {identifier}"

        details = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        details.update(kwargs)

        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details
        )


# Domain error -> (status code, error code)
DOMAIN_ERROR_STATUS = (
    (StoreUnavailableError, 503, "SERVICE_UNAVAILABLE"),
    (RecomputeTimeoutError, 504, "RECOMPUTE_TIMEOUT"),
    (TicketStoreError, 502, "TICKET_STORE_ERROR"),
)


# ==================== Error Response Format ====================

def _timestamp() -> str:
    return utcnow().strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _correlation_id(request: Request) -> Optional[str]:
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        return correlation_id
    return structlog.contextvars.get_contextvars().get("correlation_id")


def create_error_response(
    error: Exception,
    correlation_id: str = None,
) -> Tuple[Dict[str, Any], int]:
    """
    Create standardized error response.

    Format:
    {
        "error": {
            "code": "ERROR_CODE",
            "message": "Human-readable message",
            "details": {...},
            "correlation_id": "uuid"
        },
        "timestamp": "2025-10-28T10:30:45Z"
    }
    """
    if isinstance(error, APIError):
        error_code = error.error_code
        message = error.message
        details = error.details
        status_code = error.status_code
    elif isinstance(error, SmartQueueError):
        status_code, error_code = 500, "INTERNAL_ERROR"
        for error_type, mapped_status, mapped_code in DOMAIN_ERROR_STATUS:
            if isinstance(error, error_type):
                status_code, error_code = mapped_status, mapped_code
                break
        message = error.message
        details = error.details
    elif isinstance(error, StarletteHTTPException):
        error_code = "HTTP_ERROR"
        message = error.detail
        details = {}
        status_code = error.status_code
    else:
        error_code = "INTERNAL_ERROR"
        message = str(error) if str(error) else "An unexpected error occurred"
        details = {"error_type": type(error).__name__}
        status_code = 500

    response = {
        "error": {
            "code": error_code,
            "message": message,
            "details": details
        },
        "timestamp": _timestamp()
    }

    if correlation_id:
        response["error"]["correlation_id"] = correlation_id

    return response, status_code


# ==================== Exception Handlers ====================

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors."""
    logger.error(
        "api_error",
        error_code=exc.error_code,
        error_message=exc.message,
        status_code=exc.status_code,
        details=exc.details
    )

    response_data, status_code = create_error_response(exc, correlation_id=_correlation_id(request))
    return JSONResponse(status_code=status_code, content=response_data)


async def smart_queue_error_handler(request: Request, exc: SmartQueueError) -> JSONResponse:
    """Handle domain errors raised by the store, coordinator, and ranker."""
    response_data, status_code = create_error_response(exc, correlation_id=_correlation_id(request))

    logger.error(
        "smart_queue_error",
        error_type=type(exc).__name__,
        error_message=exc.message,
        status_code=status_code,
        details=exc.details,
        path=request.url.path
    )

    return JSONResponse(status_code=status_code, content=response_data)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path
    )

    response_data, status_code = create_error_response(exc, correlation_id=_correlation_id(request))
    return JSONResponse(status_code=status_code, content=response_data)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors (422)."""
    validation_errors = []
    for error in exc.errors():
        validation_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=validation_errors
    )

    response_data = {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": {
                "validation_errors": validation_errors
            }
        },
        "timestamp": _timestamp()
    }

    correlation_id = _correlation_id(request)
    if correlation_id:
        response_data["error"]["correlation_id"] = correlation_id

    return JSONResponse(status_code=422, content=response_data)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions (500)."""
    logger.error(
        "unexpected_error",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        exc_info=True
    )

    # Don't expose internal details to client
    response_data = {
        "error": {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
            "details": {}
        },
        "timestamp": _timestamp()
    }

    correlation_id = _correlation_id(request)
    if correlation_id:
        response_data["error"]["correlation_id"] = correlation_id
        response_data["error"]["message"] += f" Reference: {correlation_id}"

    return JSONResponse(status_code=500, content=response_data)


def register_exception_handlers(app) -> None:
    """Attach all handlers to a FastAPI application."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(SmartQueueError, smart_queue_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
