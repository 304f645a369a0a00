# salon/core/logging.py
"""
Structured logging with per-request correlation ids.
"""
import logging
import sys
import time
import uuid

import structlog
from fastapi import Request

from salon.config import settings


def setup_logging(level: str | None = None, json_logs: bool | None = None):
    """Configure structlog on top of the standard library logger."""
    level = (level or settings.LOG_LEVEL).upper()
    json_logs = settings.LOG_JSON if json_logs is None else json_logs

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(message)s",
        stream=sys.stdout,
    )


def get_logger(name: str = __name__):
    return structlog.get_logger(name)


async def correlation_middleware(request: Request, call_next):
    """Bind a short correlation id to every log line of the request."""
    correlation_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        correlation_id=correlation_id,
        method=request.method,
        path=request.url.path,
    )
    logger = get_logger("salon.request")
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error("request_error", error=str(e), error_type=type(e).__name__)
        raise
    else:
        duration = time.perf_counter() - started
        if response.status_code >= 400 or duration > 2.0:
            logger.info(
                "request_complete",
                status_code=response.status_code,
                duration=round(duration, 3),
            )
        response.headers["X-Request-ID"] = correlation_id
        return response
    finally:
        structlog.contextvars.clear_contextvars()
