"""
Observability Module.

Structured logging with JSON output, correlation IDs and per-operation context.
"""

from promptgraph.observability.logging import (
    LogContext,
    configure_logging,
    correlation_id_var,
    current_log_context,
    get_logger,
    timed_operation,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "LogContext",
    "correlation_id_var",
    "current_log_context",
    "timed_operation",
]
