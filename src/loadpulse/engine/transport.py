"""aiohttp-backed transport issuing timed GET requests for one virtual user."""

from __future__ import annotations

import time

import aiohttp

from loadpulse.engine.protocol import SendResult
from loadpulse.metrics.outcome import describe_error


class HttpTransport:
    """Async HTTP transport wrapping a private ``aiohttp.ClientSession``.

    Each virtual user owns one instance, so connections are reused across
    that user's requests but never shared with another user. Every request
    is timed; transport-level failures (refused connections, DNS errors,
    timeouts) are returned as a ``SendResult`` with ``error`` set instead
    of being raised.

    Attributes:
        timeout: Total per-request timeout in seconds.
        pool_size: Maximum simultaneous connections held by the session.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        pool_size: int = 10,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Total per-request timeout in seconds.
            pool_size: Connection pool limit for the session.
        """
        self.timeout = timeout
        self.pool_size = pool_size
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    @property
    def is_open(self) -> bool:
        """Return True while the underlying session is open."""
        return self._session is not None and not self._session.closed

    async def __aenter__(self) -> HttpTransport:
        """Open the underlying aiohttp session."""
        self._session = aiohttp.ClientSession(
            timeout=self._timeout,
            connector=aiohttp.TCPConnector(limit=self.pool_size),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def send(self, url: str) -> SendResult:
        """Send one GET request to ``url``.

        The response body is drained so the connection can be reused but
        is otherwise ignored.

        Args:
            url: Absolute URL to request.

        Returns:
            SendResult with the status code, or with ``error`` set on a
            transport-level failure.

        Raises:
            RuntimeError: If the transport is used outside of an async
                context manager.
        """
        if self._session is None:
            msg = "HttpTransport must be used as an async context manager"
            raise RuntimeError(msg)

        start = time.monotonic()
        try:
            async with self._session.get(url) as resp:
                await resp.read()
                status_code = resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            return SendResult(
                error=describe_error(exc),
                latency_ms=(time.monotonic() - start) * 1000,
            )

        return SendResult(
            status_code=status_code,
            latency_ms=(time.monotonic() - start) * 1000,
        )
