"""Thread-safe outcome counters shared by all virtual users."""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from loadpulse.metrics.histogram import LatencyHistogram
from loadpulse.metrics.outcome import OutcomeKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from loadpulse.metrics.outcome import RequestOutcome


@dataclass(frozen=True)
class ResultCounts:
    """Snapshot of the success and failure counters.

    Attributes:
        success_count: Attempts that received a 2xx response.
        failure_count: Attempts that received another status or failed
            at the transport level.
    """

    success_count: int = 0
    failure_count: int = 0

    @property
    def total(self) -> int:
        """Return the number of attempts recorded."""
        return self.success_count + self.failure_count


@dataclass(frozen=True)
class LatencyStats:
    """Latency distribution of all recorded attempts, in milliseconds."""

    count: int = 0
    min_ms: float = 0.0
    max_ms: float = 0.0
    mean_ms: float = 0.0
    p50_ms: float = 0.0
    p95_ms: float = 0.0
    p99_ms: float = 0.0


@dataclass(frozen=True)
class FailureBreakdown:
    """Failed attempts grouped by HTTP status and by transport error type.

    Both mappings are read-only views over private copies of the input.
    """

    by_status: Mapping[int, int] = field(default_factory=dict)
    by_error_type: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_status", MappingProxyType(dict(self.by_status)))
        object.__setattr__(self, "by_error_type", MappingProxyType(dict(self.by_error_type)))


class ResultAggregator:
    """Counts request outcomes reported concurrently by virtual users.

    ``record_success()``, ``record_failure()`` and ``record()`` may be called
    from any number of coroutines or OS threads; a ``threading.Lock``
    serializes every update so no increment is lost. Reads return
    snapshots and are only meaningful once every virtual user has
    finished; the orchestrator enforces that barrier.
    """

    def __init__(self) -> None:
        """Initialize zeroed counters."""
        self._lock = threading.Lock()
        self._success_count = 0
        self._failure_count = 0
        self._histogram = LatencyHistogram()
        self._failures_by_status: dict[int, int] = defaultdict(int)
        self._failures_by_type: dict[str, int] = defaultdict(int)

    def record_success(self, latency_ms: float | None = None) -> None:
        """Count one successful attempt.

        Args:
            latency_ms: Optional latency of the attempt.
        """
        with self._lock:
            self._success_count += 1
            if latency_ms is not None:
                self._histogram.record_latency_ms(latency_ms)

    def record_failure(
        self,
        latency_ms: float | None = None,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        """Count one failed attempt.

        Args:
            latency_ms: Optional latency of the attempt.
            status_code: Non-2xx status received, if any.
            error_type: Transport error type name, if any.
        """
        with self._lock:
            self._failure_count += 1
            if latency_ms is not None:
                self._histogram.record_latency_ms(latency_ms)
            if status_code is not None:
                self._failures_by_status[status_code] += 1
            if error_type is not None:
                self._failures_by_type[error_type] += 1

    def record(self, outcome: RequestOutcome) -> None:
        """Count a classified outcome.

        Args:
            outcome: The outcome of one request attempt.
        """
        if outcome.kind is OutcomeKind.SUCCESS:
            self.record_success(outcome.latency_ms)
        else:
            self.record_failure(
                outcome.latency_ms,
                status_code=outcome.status_code,
                error_type=outcome.error_type,
            )

    def counts(self) -> ResultCounts:
        """Return a snapshot of the success and failure counters."""
        with self._lock:
            return ResultCounts(
                success_count=self._success_count,
                failure_count=self._failure_count,
            )

    def latency_stats(self) -> LatencyStats:
        """Return the latency distribution of recorded attempts."""
        with self._lock:
            h = self._histogram
            return LatencyStats(
                count=h.get_total_count(),
                min_ms=h.get_min(),
                max_ms=h.get_max(),
                mean_ms=h.get_mean(),
                p50_ms=h.get_percentile(50.0),
                p95_ms=h.get_percentile(95.0),
                p99_ms=h.get_percentile(99.0),
            )

    def failure_breakdown(self) -> FailureBreakdown:
        """Return failed attempts grouped by status code and error type."""
        with self._lock:
            return FailureBreakdown(
                by_status=dict(self._failures_by_status),
                by_error_type=dict(self._failures_by_type),
            )
