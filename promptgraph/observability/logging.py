"""
Structured Logging Configuration.

Configures structlog for:
- JSON output in production
- Colored console output in development
- Correlation ID injection
- Per-operation context and timing (analysis request, algorithm)

Operation context is kept in structlog's contextvars, so every logger in the
package picks it up without passing loggers around.
"""

import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Literal

import structlog
from structlog.types import EventDict, WrappedLogger

SERVICE_NAME = "prompt-graph-analytics"

# Keys whose string values never reach the log output
SENSITIVE_KEYS = frozenset({
    "password", "secret", "token", "authorization", "credential", "auth",
})

# Correlation ID set by the calling layer (e.g. from an HTTP header)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class LogContext:
    """
    Context manager binding temporary fields to every log event.

    Usage:
        with LogContext(operation="pageRank", request_id="3f2a"):
            logger.info("Calculating PageRank scores")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        structlog.contextvars.reset_contextvars(**self._tokens)
        return False


def current_log_context() -> dict[str, Any]:
    """Fields currently bound by active ``LogContext`` blocks."""
    return structlog.contextvars.get_contextvars()


# ── Processors ──────────────────────────────────────────────────

def add_service_info(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add the service name and correlation ID."""
    event_dict["service"] = SERVICE_NAME
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def censor_sensitive_data(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Redact credential-like values (Neo4j password, auth tokens)."""

    def censor(key: str, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: censor(k, v) for k, v in value.items()}
        if isinstance(value, str) and any(s in key.lower() for s in SENSITIVE_KEYS):
            return "***REDACTED***"
        return value

    return {key: censor(key, value) for key, value in event_dict.items()}


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "console"] = "json",
) -> None:
    """
    Configure structlog for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" for production, "console" for development)
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_info,
        censor_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    # The driver logs every routing table refresh at INFO
    logging.getLogger("neo4j").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def timed_operation(operation: str, **fields: Any) -> Iterator[None]:
    """
    Run a block inside a ``LogContext`` and log its duration.

    A short ``request_id`` is generated unless one is given.

    Usage:
        with timed_operation("pageRank", prompt_id="p1"):
            result = await service.page_rank(params)
    """
    fields.setdefault("request_id", uuid.uuid4().hex[:8])
    logger = get_logger("promptgraph.operations")
    start = time.perf_counter()

    with LogContext(operation=operation, **fields):
        try:
            yield
        except Exception as e:
            logger.warning(
                "Operation failed",
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
                error_type=type(e).__name__,
            )
            raise
        logger.info("Operation complete", duration_ms=round((time.perf_counter() - start) * 1000, 1))
