"""
Logging setup and request logging middleware

Bounded log files (rotation, retention, compression) plus a per-request line
"""

import sys
import time
import uuid

from fastapi import Request
from loguru import logger

from app.config import settings

_NOISE = ("health check", "get /health")


def _not_noise(record) -> bool:
    message = record["message"].lower()
    return not any(skip in message for skip in _NOISE)


def setup_logger():
    """Configure loguru sinks"""
    logger.remove()

    # console (development)
    if settings.environment == "development":
        logger.add(
            sys.stdout,
            level=settings.log_level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        )

    # main log file
    logger.add(
        settings.log_file,
        level=settings.log_level,
        rotation="50 MB",
        retention="7 days",
        compression="gz",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        filter=_not_noise
    )

    # error log file
    error_log_file = settings.log_file.replace('.log', '.error.log')
    logger.add(
        error_log_file,
        level="ERROR",
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        enqueue=True,
        filter=lambda record: record["level"].name in ["ERROR", "CRITICAL"]
    )

    # warnings also go to stderr outside development
    if settings.environment != "development":
        logger.add(sys.stderr, level="WARNING")

    return logger


async def request_logging_middleware(request: Request, call_next):
    """Log one line per request and tag the response with id and timing"""
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{process_time:.4f}"
    logger.info(
        f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({process_time * 1000:.1f}ms)"
    )
    return response
