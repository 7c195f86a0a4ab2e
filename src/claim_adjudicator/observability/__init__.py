"""Observability module.

This module provides:
- Structured logging with request ID context
- Per-request latency and capability call metrics
"""

from claim_adjudicator.observability.logger import (
    RequestLogger,
    get_logger,
    log_pipeline_event,
    request_context,
)
from claim_adjudicator.observability.metrics import (
    RequestMetrics,
    RequestMetricsSummary,
    track_capability_call,
    track_stage,
)

__all__ = [
    # Logger
    "RequestLogger",
    "get_logger",
    "request_context",
    "log_pipeline_event",
    # Metrics
    "RequestMetrics",
    "RequestMetricsSummary",
    "track_capability_call",
    "track_stage",
]
