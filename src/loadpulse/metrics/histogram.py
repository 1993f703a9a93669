"""HDR histogram wrapper for request latency percentiles.

Thin wrapper around ``hdrh.histogram.HdrHistogram`` that works in
milliseconds while the HDR histogram stores integer microseconds.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

# Range: 1 microsecond to 5 minutes (in microseconds)
_LOWEST_TRACKABLE_US = 1
_HIGHEST_TRACKABLE_US = 300_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Latency recorder with constant memory regardless of request count.

    All public methods accept and return **milliseconds**. Values outside
    the trackable range are clamped rather than dropped, so every recorded
    attempt is counted.

    Attributes:
        lowest_us: Smallest value the histogram resolves, in microseconds.
        highest_us: Largest value the histogram stores, in microseconds.
    """

    def __init__(
        self,
        lowest_us: int = _LOWEST_TRACKABLE_US,
        highest_us: int = _HIGHEST_TRACKABLE_US,
        significant_digits: int = _SIGNIFICANT_DIGITS,
    ) -> None:
        """Create an empty histogram.

        Args:
            lowest_us: Smallest value resolved, in microseconds.
            highest_us: Largest value stored, in microseconds. Longer
                latencies are recorded as this value.
            significant_digits: Decimal precision kept for every bucket.
        """
        self.lowest_us = lowest_us
        self.highest_us = highest_us
        self._histogram: HdrHistogram = HdrHistogram(  # type: ignore[no-any-unimported]
            lowest_us, highest_us, significant_digits
        )

    def _is_empty(self) -> bool:
        return self._histogram.total_count == 0

    def record_latency_ms(self, latency_ms: float) -> bool:
        """Record one latency value.

        Args:
            latency_ms: Latency in milliseconds. Clamped into
                ``[lowest_us, highest_us]`` after conversion.

        Returns:
            True if the histogram accepted the value.
        """
        value_us = int(latency_ms * 1000)
        value_us = max(self.lowest_us, min(value_us, self.highest_us))
        return bool(self._histogram.record_value(value_us))

    def get_percentile(self, percentile: float) -> float:
        """Return the latency at a percentile.

        Args:
            percentile: Percentile between 0.0 and 100.0.

        Returns:
            Latency in milliseconds, or 0.0 if nothing was recorded.
        """
        if self._is_empty():
            return 0.0
        return float(self._histogram.get_value_at_percentile(percentile)) / 1000.0

    def get_min(self) -> float:
        """Return the smallest recorded latency.

        Returns:
            Latency in milliseconds, or 0.0 if nothing was recorded.
        """
        if self._is_empty():
            return 0.0
        return float(self._histogram.get_min_value()) / 1000.0

    def get_max(self) -> float:
        """Return the largest recorded latency.

        Returns:
            Latency in milliseconds, or 0.0 if nothing was recorded.
        """
        if self._is_empty():
            return 0.0
        return float(self._histogram.get_max_value()) / 1000.0

    def get_mean(self) -> float:
        """Return the average recorded latency.

        Returns:
            Latency in milliseconds, or 0.0 if nothing was recorded.
        """
        if self._is_empty():
            return 0.0
        return float(self._histogram.get_mean_value()) / 1000.0

    def get_total_count(self) -> int:
        """Return how many latencies were recorded.

        Returns:
            Number of recorded values, clamped ones included.
        """
        return int(self._histogram.total_count)
