"""Latency and call metrics tracked per pipeline run.

This module provides:
- RequestMetrics: Collects stage durations and capability calls for one request
- track_stage / track_capability_call: Context managers that time a block
- Summary export as a dict for logging
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass
class CapabilityCallMetric:
    """Metrics for a single language-model or embedding call."""

    timestamp: datetime
    capability: str
    latency_ms: float
    status: str
    error: str | None = None


@dataclass
class RequestMetricsSummary:
    """Summary of metrics for a single pipeline run."""

    request_id: str
    start_time: datetime
    end_time: datetime | None
    status: str
    stage_latency_ms: dict[str, float]
    capability_calls: dict[str, int]
    failed_calls: int
    total_capability_latency_ms: float
    p50_latency_ms: float
    p95_latency_ms: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "request_id": self.request_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "status": self.status,
            "stage_latency_ms": dict(self.stage_latency_ms),
            "capability_calls": dict(self.capability_calls),
            "failed_calls": self.failed_calls,
            "total_capability_latency_ms": self.total_capability_latency_ms,
            "p50_latency_ms": self.p50_latency_ms,
            "p95_latency_ms": self.p95_latency_ms,
        }


def _percentile(values: list[float], p: float) -> float:
    """Calculate the p-th percentile of values."""
    if not values:
        return 0.0
    sorted_values = sorted(values)
    k = (len(sorted_values) - 1) * p / 100
    f = int(k)
    c = f + 1
    if c >= len(sorted_values):
        return sorted_values[-1]
    return sorted_values[f] + (k - f) * (sorted_values[c] - sorted_values[f])


@dataclass
class RequestMetrics:
    """Collects metrics for one request.

    A fresh instance is created for every pipeline run; capability calls may
    be recorded from worker threads, so mutation is guarded by a lock.
    """

    request_id: str
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    status: str = "processing"
    stage_latency_ms: dict[str, float] = field(default_factory=dict)
    calls: list[CapabilityCallMetric] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_stage(self, stage: str, latency_ms: float) -> None:
        with self._lock:
            self.stage_latency_ms[stage] = latency_ms

    def record_capability_call(
        self,
        capability: str,
        latency_ms: float,
        status: str = "success",
        error: str | None = None,
    ) -> None:
        """Record one call to an external capability.

        Args:
            capability: "llm" or "embedding"
            latency_ms: Latency in milliseconds
            status: "success" or "error"
            error: Error message if status is "error"
        """
        metric = CapabilityCallMetric(
            timestamp=datetime.now(timezone.utc),
            capability=capability,
            latency_ms=latency_ms,
            status=status,
            error=error,
        )
        with self._lock:
            self.calls.append(metric)

        logger.debug(
            "[capability_metric] request_id=%s, capability=%s, latency=%.0fms, status=%s",
            self.request_id,
            capability,
            latency_ms,
            status,
        )

    def finish(self, status: str = "completed") -> None:
        with self._lock:
            self.end_time = datetime.now(timezone.utc)
            self.status = status

    def summary(self) -> RequestMetricsSummary:
        with self._lock:
            calls = list(self.calls)
            stages = dict(self.stage_latency_ms)

        latencies = [c.latency_ms for c in calls]
        counts: dict[str, int] = {}
        for call in calls:
            counts[call.capability] = counts.get(call.capability, 0) + 1

        return RequestMetricsSummary(
            request_id=self.request_id,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status,
            stage_latency_ms=stages,
            capability_calls=counts,
            failed_calls=len([c for c in calls if c.status == "error"]),
            total_capability_latency_ms=sum(latencies),
            p50_latency_ms=_percentile(latencies, 50),
            p95_latency_ms=_percentile(latencies, 95),
        )

    def log_summary(self) -> None:
        """Log a summary of the request's metrics."""
        summary = self.summary()
        logger.info(
            "[request_metrics_summary] request_id=%s, status=%s, capability_calls=%s, "
            "failed_calls=%d, capability_latency=%.0fms, stages=%s",
            summary.request_id,
            summary.status,
            summary.capability_calls,
            summary.failed_calls,
            summary.total_capability_latency_ms,
            {k: round(v) for k, v in summary.stage_latency_ms.items()},
        )


@contextmanager
def track_stage(metrics: RequestMetrics | None, stage: str) -> Iterator[None]:
    """Time a pipeline stage; the duration is recorded even on failure."""
    start = time.perf_counter()
    try:
        yield
    finally:
        if metrics is not None:
            metrics.record_stage(stage, (time.perf_counter() - start) * 1000)


@contextmanager
def track_capability_call(metrics: RequestMetrics | None, capability: str) -> Iterator[None]:
    """Time a capability call and record its status."""
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        if metrics is not None:
            metrics.record_capability_call(
                capability,
                (time.perf_counter() - start) * 1000,
                status="error",
                error=str(e),
            )
        raise
    else:
        if metrics is not None:
            metrics.record_capability_call(capability, (time.perf_counter() - start) * 1000)
