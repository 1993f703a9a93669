"""Diagnostic sinks notified of per-request outcomes and test milestones."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from loadpulse._internal.logging import get_logger

if TYPE_CHECKING:
    from loadpulse._internal.config import LoadTestConfig
    from loadpulse.metrics.outcome import RequestOutcome
    from loadpulse.metrics.summary import LoadTestSummary


class DiagnosticSink(Protocol):
    """Receives observations from the engine.

    Calls are fire-and-forget: implementations must return quickly and
    must not raise.
    """

    def test_started(self, config: LoadTestConfig) -> None: ...

    def request_completed(self, outcome: RequestOutcome) -> None: ...

    def test_completed(self, summary: LoadTestSummary) -> None: ...


class NullDiagnosticSink:
    """Sink that discards every observation."""

    def test_started(self, config: LoadTestConfig) -> None:
        pass

    def request_completed(self, outcome: RequestOutcome) -> None:
        pass

    def test_completed(self, summary: LoadTestSummary) -> None:
        pass


class LoggingDiagnosticSink:
    """Sink that writes observations through the ``loadpulse`` loggers.

    Per-request lines go to DEBUG so a large test does not flood the
    output at the default level; test start and the final summary go to
    INFO.
    """

    def __init__(self, name: str = "diagnostics") -> None:
        self._logger = get_logger(name)

    def test_started(self, config: LoadTestConfig) -> None:
        self._logger.info(
            "Starting load test: url=%s, virtual_users=%d, rate_per_vu=%g/s, duration=%ds",
            config.target_url,
            config.virtual_users,
            config.rate_per_user,
            config.duration_seconds,
            extra={"test_id": config.test_id or None},
        )

    def request_completed(self, outcome: RequestOutcome) -> None:
        if outcome.is_success:
            self._logger.debug(
                "VU-%d -> %d",
                outcome.user_id,
                outcome.status_code,
                extra={"vu_id": outcome.user_id, "status": outcome.status_code},
            )
        else:
            detail = outcome.error if outcome.error is not None else outcome.status_code
            self._logger.debug(
                "VU-%d ERROR -> %s",
                outcome.user_id,
                detail,
                extra={"vu_id": outcome.user_id, "status": outcome.status_code},
            )

    def test_completed(self, summary: LoadTestSummary) -> None:
        self._logger.info(
            "Load test completed: duration=%.2fs, successful=%d, failed=%d, tps=%.2f",
            summary.duration_seconds,
            summary.successful_requests,
            summary.failed_requests,
            summary.transactions_per_second,
            extra={"test_id": summary.test_id or None},
        )
