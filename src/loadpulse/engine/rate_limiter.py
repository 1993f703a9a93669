"""Fixed-interval rate limiter for a single virtual user."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class IntervalRateLimiter:
    """Spaces one virtual user's requests at least ``1 / rate`` seconds apart.

    Call ``mark()`` immediately before sending a request; it stamps the
    earliest time the next request may start. After the request completes,
    ``wait()`` sleeps for whatever part of the interval is left. A request
    that overruns its interval makes ``wait()`` return immediately, and the
    lost time is never made up with extra requests, so the effective rate is
    at most ``rate``.

    Unlike a token bucket there is no burst capacity and the limiter is not
    shared: each virtual user owns its own instance.

    Attributes:
        rate: Target requests per second.
    """

    def __init__(
        self,
        rate: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            rate: Requests per second. Must be positive; fractional rates
                such as 0.25 are supported.
            clock: Monotonic time source in seconds. Injected in tests.

        Raises:
            ValueError: If rate is not positive.
        """
        if rate <= 0:
            msg = f"rate must be positive, got {rate}"
            raise ValueError(msg)

        self._rate = float(rate)
        self._interval = 1.0 / self._rate
        self._clock = clock
        self._next_allowed: float | None = None

    @property
    def rate(self) -> float:
        """Return the target rate in requests per second."""
        return self._rate

    @property
    def interval(self) -> float:
        """Return the minimum spacing between request starts, in seconds."""
        return self._interval

    @property
    def interval_ms(self) -> float:
        """Return the minimum spacing between request starts, in milliseconds."""
        return 1000.0 / self._rate

    @property
    def next_allowed(self) -> float | None:
        """Return the earliest start time of the next request, if marked."""
        return self._next_allowed

    def mark(self) -> float:
        """Record that a request is starting now.

        Returns:
            The clock value at which the next request is permitted.
        """
        self._next_allowed = self._clock() + self._interval
        return self._next_allowed

    def remaining(self) -> float:
        """Return the seconds left before the next request is permitted.

        Returns 0.0 if ``mark()`` has never been called or the interval has
        already elapsed.
        """
        if self._next_allowed is None:
            return 0.0
        return max(0.0, self._next_allowed - self._clock())

    async def wait(self, stop_event: asyncio.Event | None = None) -> None:
        """Sleep until the next request is permitted.

        Uses ``asyncio.sleep()`` so other virtual users keep running. If a
        ``stop_event`` is given, the wait ends early as soon as it is set.

        Args:
            stop_event: Optional event that cuts the wait short.
        """
        delay = self.remaining()
        if delay <= 0:
            return

        if stop_event is None:
            await asyncio.sleep(delay)
            return

        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
