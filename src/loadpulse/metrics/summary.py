"""Final load test summary and the pure function that builds it."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from loadpulse.metrics.aggregator import FailureBreakdown, LatencyStats

if TYPE_CHECKING:
    from loadpulse.metrics.aggregator import ResultCounts

# Decimal digits kept for reported durations and rates.
DISPLAY_PRECISION = 2

# Elapsed times at or below this are treated as zero.
_MIN_DURATION_SECONDS = 1e-9


@dataclass(frozen=True)
class LoadTestSummary:
    """Outcome of a completed load test.

    Attributes:
        test_id: Caller-supplied identifier, possibly empty.
        target_url: URL the virtual users requested.
        duration_seconds: Measured elapsed time from start until every
            virtual user finished, rounded for display.
        successful_requests: Attempts that received a 2xx response.
        failed_requests: Attempts that received another status or failed
            at the transport level.
        transactions_per_second: ``successful_requests / duration``
            computed at full precision, then rounded for display.
        latency: Latency distribution of all attempts.
        failures: Failed attempts grouped by status and error type.
    """

    test_id: str
    target_url: str
    duration_seconds: float
    successful_requests: int
    failed_requests: int
    transactions_per_second: float
    latency: LatencyStats = field(default_factory=LatencyStats)
    failures: FailureBreakdown = field(default_factory=FailureBreakdown)

    @property
    def total_requests(self) -> int:
        """Return the number of attempts, successful or not."""
        return self.successful_requests + self.failed_requests

    @property
    def error_rate(self) -> float:
        """Return the fraction of attempts that failed (0.0 to 1.0)."""
        total = self.total_requests
        return self.failed_requests / total if total > 0 else 0.0

    def to_message(self) -> dict[str, object]:
        """Return the camelCase message handed to summary publishers."""
        return {
            "testId": self.test_id,
            "duration": self.duration_seconds,
            "successfulRequests": self.successful_requests,
            "failedRequests": self.failed_requests,
            "tps": self.transactions_per_second,
            "targetUrl": self.target_url,
        }

    def to_dict(self) -> dict[str, object]:
        """Return every field, including latency and failure breakdown."""
        return {
            "test_id": self.test_id,
            "target_url": self.target_url,
            "duration_seconds": self.duration_seconds,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "transactions_per_second": self.transactions_per_second,
            "latency": asdict(self.latency),
            "failures": {
                # JSON object keys must be strings
                "by_status": {
                    str(status): count for status, count in self.failures.by_status.items()
                },
                "by_error_type": dict(self.failures.by_error_type),
            },
        }


def compute_tps(successful_requests: int, actual_duration_seconds: float) -> float:
    """Return successful requests per second at full precision.

    A zero, negative or vanishingly small duration yields 0.0 instead of
    dividing by zero.
    """
    if actual_duration_seconds <= _MIN_DURATION_SECONDS:
        return 0.0
    return successful_requests / actual_duration_seconds


def build_summary(
    counts: ResultCounts,
    actual_duration_seconds: float,
    target_url: str,
    test_id: str = "",
    *,
    latency: LatencyStats | None = None,
    failures: FailureBreakdown | None = None,
) -> LoadTestSummary:
    """Turn raw counts and elapsed time into the reported summary.

    Args:
        counts: Final success and failure counts.
        actual_duration_seconds: Measured elapsed time of the test.
        target_url: URL that was tested.
        test_id: Caller-supplied identifier.
        latency: Optional latency distribution to attach.
        failures: Optional failure breakdown to attach.

    Returns:
        The immutable LoadTestSummary.
    """
    tps = compute_tps(counts.success_count, actual_duration_seconds)
    return LoadTestSummary(
        test_id=test_id,
        target_url=target_url,
        duration_seconds=round(max(actual_duration_seconds, 0.0), DISPLAY_PRECISION),
        successful_requests=counts.success_count,
        failed_requests=counts.failure_count,
        transactions_per_second=round(tps, DISPLAY_PRECISION),
        latency=latency if latency is not None else LatencyStats(),
        failures=failures if failures is not None else FailureBreakdown(),
    )
