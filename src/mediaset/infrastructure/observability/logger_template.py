"""Shared logging helpers for timed operations and worker health.

USAGE:
    from mediaset.infrastructure.observability.logger_template import (
        log_operation,
        log_worker_health,
    )

    async with log_operation(logger, "enrichment_pass", batch_size=25):
        await run_pass()

    log_worker_health(logger, "image_lookup", cycles_completed=10, errors_total=1,
                      uptime_seconds=3600)
"""

import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Yo, wrap any operation you want timed. On exception it logs {operation}.failed with
# exc_info and re-raises - the caller still decides what the failure means.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    log_level: int = logging.INFO,
    **context: Any,
) -> AsyncIterator[None]:
    """Log {operation}.started / .completed / .failed with duration_ms."""
    start = time.monotonic()
    logger.log(log_level, f"{operation}.started", extra=context)

    try:
        yield
    except Exception as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": duration_ms,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.log(
        log_level,
        f"{operation}.completed",
        extra={**context, "duration_ms": duration_ms},
    )


def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Log worker health status in one consistent shape."""
    log_data = {
        "worker": worker_name,
        "cycles_completed": cycles_completed,
        "errors_total": errors_total,
        "uptime_seconds": int(uptime_seconds),
    }
    if extra_stats:
        log_data.update(extra_stats)

    logger.info("worker.health", extra=log_data)


# Manual-timing variant for loops where a context manager doesn't fit, e.g. the scheduler
# timing each entity at DEBUG level while it catches failures itself.
def start_operation(
    logger: logging.Logger,
    operation: str,
    operation_id: str | None = None,
    log_level: int = logging.INFO,
    **context: Any,
) -> tuple[float, str]:
    """Log {operation}.started and return (start_time, operation_id) for end_operation()."""
    if operation_id is None:
        operation_id = str(uuid.uuid4())

    start_time = time.monotonic()
    logger.log(
        log_level,
        f"{operation}.started",
        extra={**context, "operation_id": operation_id},
    )
    return start_time, operation_id


def end_operation(
    logger: logging.Logger,
    operation: str,
    start_time: float,
    operation_id: str,
    success: bool = True,
    error: Exception | None = None,
    log_level: int = logging.INFO,
    **context: Any,
) -> None:
    """Log {operation}.completed or {operation}.failed with duration_ms.

    Failures always log at ERROR regardless of log_level.
    """
    duration_ms = int((time.monotonic() - start_time) * 1000)
    extra = {**context, "operation_id": operation_id, "duration_ms": duration_ms}

    if success:
        logger.log(log_level, f"{operation}.completed", extra=extra)
        return

    if error is not None:
        extra["error"] = str(error)
        extra["error_type"] = type(error).__name__
    logger.error(f"{operation}.failed", extra=extra, exc_info=error)
