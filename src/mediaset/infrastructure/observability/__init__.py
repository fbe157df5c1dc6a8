"""Observability infrastructure: structured logging and tracing."""

from mediaset.infrastructure.observability.logger_template import (
    end_operation,
    log_operation,
    log_worker_health,
    start_operation,
)
from mediaset.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from mediaset.infrastructure.observability.tracing import configure_tracing, get_tracer

__all__ = [
    "configure_logging",
    "configure_tracing",
    "end_operation",
    "get_correlation_id",
    "get_tracer",
    "log_operation",
    "log_worker_health",
    "set_correlation_id",
    "start_operation",
]
