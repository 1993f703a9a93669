"""LoadPulse: rate-limited HTTP load testing with virtual users."""

from __future__ import annotations

from loadpulse._internal.config import LoadTestConfig, RuntimeSettings, load_settings
from loadpulse._internal.errors import ConfigError, EngineError, LoadPulseError, PublishError
from loadpulse.engine.orchestrator import LoadTestOrchestrator, OrchestratorState, run_load_test
from loadpulse.metrics.aggregator import ResultAggregator, ResultCounts
from loadpulse.metrics.outcome import OutcomeKind, RequestOutcome
from loadpulse.metrics.summary import LoadTestSummary, build_summary

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "EngineError",
    "LoadPulseError",
    "LoadTestConfig",
    "LoadTestOrchestrator",
    "LoadTestSummary",
    "OrchestratorState",
    "OutcomeKind",
    "PublishError",
    "RequestOutcome",
    "ResultAggregator",
    "ResultCounts",
    "RuntimeSettings",
    "build_summary",
    "load_settings",
    "run_load_test",
]
