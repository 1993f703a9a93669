"""Classification of a single request attempt into a tagged outcome."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutcomeKind(Enum):
    """Tag of a RequestOutcome."""

    SUCCESS = "success"
    FAILURE_STATUS = "failure_status"
    FAILURE_ERROR = "failure_error"


@dataclass(frozen=True)
class RequestOutcome:
    """Result of one request attempt by one virtual user.

    Exactly one of ``status_code`` and ``error`` is set: ``SUCCESS`` and
    ``FAILURE_STATUS`` carry the received status, ``FAILURE_ERROR`` carries
    a diagnostic message for a transport-level failure.

    Attributes:
        kind: Outcome tag.
        status_code: HTTP status received, or None on transport error.
        error: Transport error message, or None if a response arrived.
        latency_ms: Time from sending the request to its completion.
        user_id: Virtual user that made the attempt (diagnostics only).
    """

    kind: OutcomeKind
    status_code: int | None = None
    error: str | None = None
    latency_ms: float = 0.0
    user_id: int = 0

    @property
    def is_success(self) -> bool:
        """Return True for a 2xx response."""
        return self.kind is OutcomeKind.SUCCESS

    @property
    def error_type(self) -> str | None:
        """Return the exception name prefix of ``error`` (e.g. ``ClientConnectorError``)."""
        if self.error is None:
            return None
        return self.error.split(":")[0].strip()


def is_success_status(status_code: int) -> bool:
    """Return True if ``status_code`` is in the 2xx range."""
    return 200 <= status_code <= 299


def classify_status(
    status_code: int,
    *,
    latency_ms: float = 0.0,
    user_id: int = 0,
) -> RequestOutcome:
    """Classify a received HTTP status.

    Args:
        status_code: Status code of the response.
        latency_ms: Request latency in milliseconds.
        user_id: Virtual user that made the request.

    Returns:
        A SUCCESS outcome for 2xx, otherwise FAILURE_STATUS.
    """
    kind = OutcomeKind.SUCCESS if is_success_status(status_code) else OutcomeKind.FAILURE_STATUS
    return RequestOutcome(
        kind=kind,
        status_code=status_code,
        latency_ms=latency_ms,
        user_id=user_id,
    )


def classify_error(
    error: BaseException | str,
    *,
    latency_ms: float = 0.0,
    user_id: int = 0,
) -> RequestOutcome:
    """Classify a transport-level failure (connection, timeout, DNS).

    Args:
        error: The exception raised by the transport, or its formatted message.
        latency_ms: Time spent before the failure, in milliseconds.
        user_id: Virtual user that made the request.

    Returns:
        A FAILURE_ERROR outcome with a diagnostic message.
    """
    return RequestOutcome(
        kind=OutcomeKind.FAILURE_ERROR,
        error=error if isinstance(error, str) else describe_error(error),
        latency_ms=latency_ms,
        user_id=user_id,
    )


def describe_error(exc: BaseException) -> str:
    """Format an exception as ``"<TypeName>: <message>"``.

    Timeouts often carry an empty message, so the type name alone is used
    in that case.
    """
    message = str(exc)
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message}"
