"""A single simulated client issuing rate-limited requests."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from loadpulse._internal.logging import get_logger
from loadpulse.engine.protocol import UserReport
from loadpulse.engine.rate_limiter import IntervalRateLimiter
from loadpulse.metrics.outcome import classify_error, classify_status

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Callable

    from loadpulse.engine.protocol import SendResult, Transport, TransportFactory
    from loadpulse.engine.window import LoadWindow
    from loadpulse.metrics.aggregator import ResultAggregator
    from loadpulse.metrics.outcome import RequestOutcome
    from loadpulse.reporting.diagnostics import DiagnosticSink

logger = get_logger("engine.virtual_user")


class VirtualUser:
    """One independent client driving requests at its own rate.

    Each iteration stamps the rate limiter, sends one GET through the
    user's private transport, classifies and records the outcome, then
    sleeps out the rest of the interval. Failed requests are counted and
    the loop carries on; only the close of the test window or the stop
    event ends it. A request already in flight when the window closes is
    allowed to finish and is counted.

    Attributes:
        user_id: Identifier (1..N) used only in diagnostics.
    """

    def __init__(
        self,
        user_id: int,
        target_url: str,
        rate: float,
        window: LoadWindow,
        aggregator: ResultAggregator,
        transport_factory: TransportFactory,
        diagnostics: DiagnosticSink,
        *,
        stop_event: asyncio.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the virtual user.

        Args:
            user_id: Identifier used in diagnostics.
            target_url: URL requested on every iteration.
            rate: Requests per second for this user.
            window: Shared test window.
            aggregator: Shared outcome counters.
            transport_factory: Creates this user's private transport.
            diagnostics: Sink notified of every outcome.
            stop_event: Optional event that ends the loop early.
            clock: Monotonic time source, shared with the window.
        """
        self.user_id = user_id
        self._target_url = target_url
        self._window = window
        self._aggregator = aggregator
        self._transport_factory = transport_factory
        self._diagnostics = diagnostics
        self._stop_event = stop_event
        self._clock = clock
        self._limiter = IntervalRateLimiter(rate, clock=clock)

        self._attempts = 0
        self._successes = 0
        self._failures = 0

    @property
    def attempts(self) -> int:
        """Return the number of requests completed so far."""
        return self._attempts

    def _should_continue(self) -> bool:
        if self._stop_event is not None and self._stop_event.is_set():
            return False
        return self._window.is_open(self._clock())

    async def run(self) -> UserReport:
        """Run the request loop until the window closes or a stop is requested.

        The transport is opened on entry and closed on every exit path,
        including cancellation.

        Returns:
            A UserReport with this user's tallies.
        """
        logger.debug("VU-%d starting at %g req/s", self.user_id, self._limiter.rate)
        async with self._transport_factory() as transport:
            while self._should_continue():
                self._limiter.mark()
                outcome = await self._attempt(transport)
                self._record(outcome)
                await self._limiter.wait(self._stop_event)

        logger.debug(
            "VU-%d finished: attempts=%d, failures=%d",
            self.user_id,
            self._attempts,
            self._failures,
        )
        return self.report()

    def report(self) -> UserReport:
        """Return this user's tallies so far."""
        return UserReport(
            user_id=self.user_id,
            attempts=self._attempts,
            successes=self._successes,
            failures=self._failures,
        )

    async def _attempt(self, transport: Transport) -> RequestOutcome:
        start = self._clock()
        try:
            result: SendResult = await transport.send(self._target_url)
        except Exception as exc:
            logger.debug("VU-%d request raised", self.user_id, exc_info=True)
            return classify_error(
                exc,
                latency_ms=(self._clock() - start) * 1000,
                user_id=self.user_id,
            )

        if result.status_code is not None:
            return classify_status(
                result.status_code,
                latency_ms=result.latency_ms,
                user_id=self.user_id,
            )
        return classify_error(
            result.error or "unknown transport error",
            latency_ms=result.latency_ms,
            user_id=self.user_id,
        )

    def _record(self, outcome: RequestOutcome) -> None:
        self._aggregator.record(outcome)
        self._attempts += 1
        if outcome.is_success:
            self._successes += 1
        else:
            self._failures += 1
        try:
            self._diagnostics.request_completed(outcome)
        except Exception:
            logger.debug(
                "Diagnostic sink failed for VU-%d",
                self.user_id,
                exc_info=True,
            )
