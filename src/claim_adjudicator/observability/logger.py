"""Structured logging with request context for observability.

This module provides:
- RequestLogger: A logger adapter that attaches request_id to all log messages
- request_context: A context manager for setting request context
- log_pipeline_event: Helper for logging pipeline events
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

# Context variables are copied into asyncio.to_thread workers
_request_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "request_context", default={}
)


def _get_request_context() -> dict[str, Any]:
    """Get the current request context."""
    return _request_context.get()


def _set_request_context(data: dict[str, Any]) -> contextvars.Token:
    """Set the request context, returning a token to restore the previous one."""
    return _request_context.set(data)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with request context."""
        log_data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        request_ctx = _get_request_context()
        if request_ctx:
            log_data["request_id"] = request_ctx.get("request_id")
            log_data["stage"] = request_ctx.get("stage")

        if getattr(record, "request_id", None):
            log_data["request_id"] = record.request_id
        if getattr(record, "stage", None):
            log_data["stage"] = record.stage
        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with request context prefix."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with request context prefix."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        ctx_parts = []
        request_ctx = _get_request_context()

        request_id = getattr(record, "request_id", None) or request_ctx.get("request_id")
        if request_id:
            ctx_parts.append(f"request={request_id}")

        stage = getattr(record, "stage", None) or request_ctx.get("stage")
        if stage:
            ctx_parts.append(f"stage={stage}")

        ctx_str = f" [{', '.join(ctx_parts)}]" if ctx_parts else ""

        message = record.getMessage()
        if getattr(record, "extra_data", None):
            message += f" | {record.extra_data}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return f"{timestamp} {record.levelname:8}{ctx_str} {record.name}: {message}"


class RequestLogger(logging.LoggerAdapter):
    """Logger adapter that adds request context to all log messages."""

    def __init__(self, logger: logging.Logger, request_id: str | None = None):
        super().__init__(logger, {})
        self._request_id = request_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Add request context to log kwargs."""
        extra = kwargs.get("extra", {})

        if self._request_id:
            extra.setdefault("request_id", self._request_id)

        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(
    name: str,
    request_id: str | None = None,
    structured: bool | None = None,
) -> RequestLogger:
    """Get a RequestLogger instance.

    Args:
        name: Logger name (typically __name__)
        request_id: Optional request ID to attach to all logs
        structured: If True, use JSON format. If False, use human-readable.
                   If None, use CLAIM_ADJUDICATOR_LOG_FORMAT env var (default: human)

    Returns:
        RequestLogger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        if structured is None:
            log_format = os.environ.get("CLAIM_ADJUDICATOR_LOG_FORMAT", "human").lower()
            structured = log_format == "json"

        # stdout is reserved for CLI output
        handler = logging.StreamHandler(sys.stderr)
        if structured:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(HumanReadableFormatter())

        logger.addHandler(handler)

        log_level = os.environ.get("CLAIM_ADJUDICATOR_LOG_LEVEL", "INFO").upper()
        logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Prevent duplicate logs from propagating to parent handlers
        logger.propagate = False

    return RequestLogger(logger, request_id)


@contextmanager
def request_context(request_id: str, stage: str | None = None, **extra: Any):
    """Context manager for setting request context on all logs within the block.

    Usage:
        with request_context(request_id="req-123"):
            logger.info("Parsing documents")  # Will include request_id in output
    """
    token = _set_request_context({"request_id": request_id, "stage": stage, **extra})
    try:
        yield
    finally:
        _request_context.reset(token)


def set_request_stage(stage: str) -> None:
    """Update the stage recorded in the current request context."""
    current = _get_request_context()
    if current:
        _request_context.set({**current, "stage": stage})


def log_pipeline_event(
    logger: logging.Logger | RequestLogger,
    event: str,
    level: int = logging.INFO,
    **data: Any,
) -> None:
    """Log a pipeline event with structured data.

    Args:
        logger: Logger instance
        event: Event name (e.g., "stage_started", "clauses_retrieved")
        level: Log level
        **data: Additional event data
    """
    message = f"[{event}]"
    if data:
        details = ", ".join(f"{k}={v}" for k, v in data.items())
        message = f"{message} {details}"

    logger.log(level, message, extra={"extra_data": {"event": event, **data}})
