"""Protocol types shared between the orchestrator, virtual users and transports."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SendResult:
    """Raw result of one request, before classification.

    Attributes:
        status_code: HTTP status received, or None if the request failed.
        error: Transport error message, or None if a response arrived.
        latency_ms: Time spent on the request in milliseconds.
    """

    status_code: int | None = None
    error: str | None = None
    latency_ms: float = 0.0


class Transport(Protocol):
    """Issues read requests on behalf of exactly one virtual user.

    A transport is an async context manager: the virtual user enters it
    when it starts and exits it when it stops, on every exit path. It
    must never raise for transport-level failures; those are reported as
    a SendResult with ``error`` set.
    """

    async def __aenter__(self) -> Transport: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None: ...

    async def send(self, url: str) -> SendResult: ...


TransportFactory = Callable[[], Transport]


@dataclass(frozen=True)
class UserReport:
    """Per-virtual-user tally returned when a virtual user finishes.

    Attributes:
        user_id: Identifier of the virtual user (1..N).
        attempts: Requests completed by this user.
        successes: Attempts classified as success.
        failures: Attempts classified as failure.
    """

    user_id: int
    attempts: int
    successes: int
    failures: int
