"""
Structured logging for the smart ticket queue.

structlog with event-style messages ("smart_sort_recompute_completed",
"ticket_store_query_failed", ...) and keyword context. Every HTTP request gets
a correlation id that is bound into the log context and echoed back in the
X-Correlation-ID response header.
"""

import logging
import time
import uuid

import structlog
from fastapi import Request

CORRELATION_HEADER = "X-Correlation-ID"


def configure_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Configure structlog and route stdlib logging (SQLAlchemy, APScheduler, uvicorn) to the same level.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: JSON lines for production, console rendering for local runs
    """
    level = getattr(logging, log_level.upper())

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_logs:
        renderer_processors = [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_processors = [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=shared_processors + renderer_processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=level, force=True)


async def correlation_id_middleware(request: Request, call_next):
    """Bind a per-request correlation id and log request timing."""
    correlation_id = (
        request.headers.get(CORRELATION_HEADER)
        or request.headers.get("X-Request-ID")
        or str(uuid.uuid4())
    )
    request.state.correlation_id = correlation_id

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        correlation_id=correlation_id,
        method=request.method,
        path=request.url.path,
    )
    logger = structlog.get_logger()
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "request_failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_seconds=round(time.perf_counter() - start, 3),
            exc_info=True,
        )
        structlog.contextvars.clear_contextvars()
        raise

    response.headers[CORRELATION_HEADER] = correlation_id
    logger.info(
        "request_completed",
        status_code=response.status_code,
        duration_seconds=round(time.perf_counter() - start, 3),
    )
    structlog.contextvars.clear_contextvars()
    return response


def get_logger(name: str = None):
    return structlog.get_logger(name)


def log_with_context(**context):
    """Bind context onto every later log line of the current request or task."""
    structlog.contextvars.bind_contextvars(**context)


def log_database_query(operation: str, duration: float, error: str = None):
    """Log one ticket store call; failures at error level, successes at debug."""
    logger = structlog.get_logger()
    if error:
        logger.error(
            "ticket_store_query_failed",
            operation=operation,
            duration_seconds=round(duration, 3),
            error=error,
        )
        return
    logger.debug("ticket_store_query_completed", operation=operation, duration_seconds=round(duration, 3))
