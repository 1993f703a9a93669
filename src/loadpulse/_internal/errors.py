"""Custom exception hierarchy for LoadPulse."""

from __future__ import annotations


class LoadPulseError(Exception):
    """Base exception for all LoadPulse errors.

    All custom exceptions in LoadPulse inherit from this class, making it
    easy to catch any LoadPulse-specific error with a single except clause.
    """


class ConfigError(LoadPulseError):
    """Raised when a load test configuration is invalid or missing.

    A ``ConfigError`` is always raised before any virtual user starts.

    Examples:
        - A required argument is missing or not numeric.
        - Virtual users, rate or duration is not positive.
        - The target URL is empty or not an absolute http(s) URL.
        - An environment variable has an invalid value.
    """


class PublishError(LoadPulseError):
    """Raised when a finished summary cannot be handed to a publisher.

    Publishing is best-effort: the orchestrator logs this error and
    returns the already-computed summary unchanged.
    """


class EngineError(LoadPulseError):
    """Raised when the load test engine is misused.

    Examples:
        - ``LoadTestOrchestrator.run()`` is called a second time.
    """
