"""Top-level load test orchestrator and its synchronous entry point."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from loadpulse._internal.config import RuntimeSettings, validate_config
from loadpulse._internal.errors import ConfigError, EngineError, PublishError
from loadpulse._internal.logging import get_logger, setup_logging
from loadpulse.engine.transport import HttpTransport
from loadpulse.engine.virtual_user import VirtualUser
from loadpulse.engine.window import LoadWindow
from loadpulse.metrics.aggregator import ResultAggregator
from loadpulse.metrics.summary import build_summary
from loadpulse.reporting.diagnostics import LoggingDiagnosticSink

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadpulse._internal.config import LoadTestConfig
    from loadpulse.engine.protocol import Transport, TransportFactory, UserReport
    from loadpulse.metrics.summary import LoadTestSummary
    from loadpulse.reporting.diagnostics import DiagnosticSink
    from loadpulse.reporting.publisher import SummaryPublisher

logger = get_logger("engine.orchestrator")


class OrchestratorState(Enum):
    """State machine for a load test run."""

    UNSTARTED = auto()
    VALIDATING = auto()
    RUNNING = auto()
    AGGREGATING = auto()
    COMPLETED = auto()
    REJECTED = auto()


class LoadTestOrchestrator:
    """Runs one load test from validation to the final summary.

    Validates the config, opens the test window, starts one asyncio task
    per virtual user, waits for all of them, then derives the summary from
    the shared aggregator. The join is the only synchronization point
    besides the aggregator's lock.

    State machine: UNSTARTED -> VALIDATING -> RUNNING -> AGGREGATING -> COMPLETED
                                           -> REJECTED (invalid config)

    An instance runs at most one test.
    """

    def __init__(
        self,
        *,
        transport_factory: TransportFactory | None = None,
        diagnostics: DiagnosticSink | None = None,
        publisher: SummaryPublisher | None = None,
        settings: RuntimeSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            transport_factory: Creates one private transport per virtual
                user. Defaults to an ``HttpTransport`` built from settings.
            diagnostics: Sink notified of outcomes and milestones.
                Defaults to a ``LoggingDiagnosticSink``.
            publisher: Optional best-effort destination for the summary.
            settings: Runtime settings. Defaults to ``RuntimeSettings()``.
            clock: Monotonic time source.
        """
        self._settings = settings or RuntimeSettings()
        self._transport_factory = transport_factory or self._http_transport
        self._diagnostics: DiagnosticSink = diagnostics or LoggingDiagnosticSink()
        self._publisher = publisher
        self._clock = clock

        self._state = OrchestratorState.UNSTARTED
        self._reports: list[UserReport] = []
        self._summary: LoadTestSummary | None = None

    @property
    def state(self) -> OrchestratorState:
        """Return the current state."""
        return self._state

    @property
    def reports(self) -> list[UserReport]:
        """Return per-user tallies, available once the run has finished."""
        return list(self._reports)

    @property
    def summary(self) -> LoadTestSummary | None:
        """Return the summary of a completed run, or None."""
        return self._summary

    def _http_transport(self) -> Transport:
        return HttpTransport(
            timeout=self._settings.request_timeout,
            pool_size=self._settings.connection_pool_size,
        )

    async def run(
        self,
        config: LoadTestConfig,
        *,
        stop_event: asyncio.Event | None = None,
    ) -> LoadTestSummary:
        """Execute the load test and return its summary.

        Args:
            config: Test parameters.
            stop_event: Optional event that closes the window early. Virtual
                users stop starting new requests once it is set; requests in
                flight still finish and are counted.

        Returns:
            The final LoadTestSummary.

        Raises:
            ConfigError: If ``config`` is invalid. No virtual user is started.
            EngineError: If this orchestrator has already been run.
        """
        if self._state is not OrchestratorState.UNSTARTED:
            msg = f"Orchestrator already used (state={self._state.name})"
            raise EngineError(msg)

        self._state = OrchestratorState.VALIDATING
        try:
            validate_config(config)
        except ConfigError as exc:
            self._state = OrchestratorState.REJECTED
            logger.error("Rejected load test configuration: %s", exc)
            raise

        aggregator = ResultAggregator()
        self._notify(self._diagnostics.test_started, config)

        window = LoadWindow.starting_now(config.duration_seconds, clock=self._clock)
        self._state = OrchestratorState.RUNNING

        users = [
            VirtualUser(
                user_id=user_id,
                target_url=config.target_url,
                rate=config.rate_per_user,
                window=window,
                aggregator=aggregator,
                transport_factory=self._transport_factory,
                diagnostics=self._diagnostics,
                stop_event=stop_event,
                clock=self._clock,
            )
            for user_id in range(1, config.virtual_users + 1)
        ]
        tasks = [
            asyncio.create_task(user.run(), name=f"virtual-user-{user.user_id}")
            for user in users
        ]
        logger.debug(
            "Started %d virtual users for a %.0fs window", len(tasks), window.duration
        )

        results = await asyncio.gather(*tasks, return_exceptions=True)
        elapsed = self._clock() - window.start

        self._state = OrchestratorState.AGGREGATING
        for user, result in zip(users, results, strict=True):
            if isinstance(result, BaseException):
                logger.error(
                    "VU-%d stopped unexpectedly: %s",
                    user.user_id,
                    result,
                    exc_info=result,
                )
                self._reports.append(user.report())
            else:
                self._reports.append(result)

        summary = build_summary(
            aggregator.counts(),
            elapsed,
            config.target_url,
            config.test_id,
            latency=aggregator.latency_stats(),
            failures=aggregator.failure_breakdown(),
        )
        self._summary = summary
        self._state = OrchestratorState.COMPLETED
        self._notify(self._diagnostics.test_completed, summary)

        await self._publish(summary)
        return summary

    @staticmethod
    def _notify(callback: Callable[..., None], payload: object) -> None:
        """Pass a milestone to the diagnostic sink, logging any failure."""
        try:
            callback(payload)
        except Exception:
            logger.warning(
                "Diagnostic sink failed in %s", callback.__name__, exc_info=True
            )

    async def _publish(self, summary: LoadTestSummary) -> None:
        """Hand the summary to the publisher, logging any failure."""
        if self._publisher is None:
            return
        try:
            await self._publisher.publish(summary)
        except PublishError as exc:
            logger.warning("Failed to publish load test summary: %s", exc)
        except Exception:
            logger.exception("Unexpected error while publishing load test summary")


def _install_uvloop() -> None:
    """Install uvloop as the default event loop policy if available.

    Falls back to the default asyncio event loop on Windows or if uvloop
    is not installed.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop

        uvloop.install()
        logger.debug("uvloop installed as event loop policy")
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Make SIGINT and SIGTERM close the test window early."""
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("Signal received, stopping virtual users")
        stop_event.set()

    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, _signal_handler)
        loop.add_signal_handler(signal.SIGTERM, _signal_handler)
    else:
        # Windows doesn't support add_signal_handler
        signal.signal(signal.SIGINT, lambda _s, _f: _signal_handler())
        signal.signal(signal.SIGTERM, lambda _s, _f: _signal_handler())


def _remove_signal_handlers() -> None:
    """Restore default SIGINT and SIGTERM handling."""
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    else:
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)


async def _run_orchestrator(
    orchestrator: LoadTestOrchestrator,
    config: LoadTestConfig,
    *,
    handle_signals: bool,
) -> LoadTestSummary:
    stop_event = asyncio.Event()
    if handle_signals:
        _install_signal_handlers(stop_event)
    try:
        return await orchestrator.run(config, stop_event=stop_event)
    finally:
        if handle_signals:
            _remove_signal_handlers()


def run_load_test(
    config: LoadTestConfig,
    *,
    settings: RuntimeSettings | None = None,
    publisher: SummaryPublisher | None = None,
    diagnostics: DiagnosticSink | None = None,
    handle_signals: bool = True,
    log_level: int = logging.INFO,
    json_logs: bool = False,
) -> LoadTestSummary:
    """Run a load test to completion in the current process.

    Installs uvloop when available, sets up logging, and runs a
    ``LoadTestOrchestrator`` on a fresh event loop. With
    ``handle_signals``, SIGINT/SIGTERM stop the test gracefully and the
    summary of what ran is still returned.

    Args:
        config: Test parameters.
        settings: Runtime settings. Defaults to ``RuntimeSettings()``.
        publisher: Optional best-effort destination for the summary.
        diagnostics: Optional diagnostic sink.
        handle_signals: Install SIGINT/SIGTERM handlers for the run.
        log_level: Logging level.
        json_logs: Emit structured JSON log lines.

    Returns:
        The final LoadTestSummary.

    Raises:
        ConfigError: If ``config`` is invalid.
    """
    _install_uvloop()
    setup_logging(level=log_level, json_format=json_logs)

    orchestrator = LoadTestOrchestrator(
        settings=settings,
        publisher=publisher,
        diagnostics=diagnostics,
    )
    return asyncio.run(
        _run_orchestrator(orchestrator, config, handle_signals=handle_signals)
    )
