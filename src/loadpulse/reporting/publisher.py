"""Best-effort publishers that hand a finished summary to an external sink."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import aiohttp

from loadpulse._internal.errors import PublishError
from loadpulse._internal.logging import get_logger

if TYPE_CHECKING:
    from loadpulse.metrics.summary import LoadTestSummary

logger = get_logger("reporting.publisher")


class SummaryPublisher(Protocol):
    """Delivers a LoadTestSummary somewhere outside the process.

    Implementations raise ``PublishError`` on failure. The caller logs it
    and never retries or alters the summary.
    """

    async def publish(self, summary: LoadTestSummary) -> None: ...


def serialize_message(summary: LoadTestSummary) -> str:
    """Return the compact JSON form of ``summary.to_message()``."""
    return json.dumps(summary.to_message(), separators=(",", ":"))


class HttpSummaryPublisher:
    """POSTs the summary message as JSON to a collector endpoint.

    Attributes:
        url: Endpoint receiving the message.
        timeout: Total timeout for the POST, in seconds.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    async def publish(self, summary: LoadTestSummary) -> None:
        """Send the summary.

        Raises:
            PublishError: If the endpoint is unreachable or answers with a
                non-2xx status.
        """
        body = serialize_message(summary)
        try:
            async with (
                aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as session,
                session.post(self.url, data=body, headers=self._headers) as resp,
            ):
                if resp.status >= 300:
                    text = await resp.text()
                    msg = f"Summary endpoint {self.url} answered {resp.status}: {text[:200]}"
                    raise PublishError(msg)
        except (aiohttp.ClientError, TimeoutError) as exc:
            msg = f"Could not send summary to {self.url}: {type(exc).__name__}: {exc}"
            raise PublishError(msg) from exc

        logger.info("Sent load test summary to %s", self.url)


class JsonFileSummaryPublisher:
    """Writes the full summary as pretty-printed JSON to a file.

    Attributes:
        path: Destination file. Parent directories are created.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def publish(self, summary: LoadTestSummary) -> None:
        """Write the summary file.

        Raises:
            PublishError: If the file cannot be written.
        """
        text = json.dumps(summary.to_dict(), indent=2) + "\n"
        try:
            await asyncio.to_thread(self._write, text)
        except OSError as exc:
            msg = f"Could not write summary to {self.path}: {exc}"
            raise PublishError(msg) from exc

        logger.info("Wrote load test summary to %s", self.path)

    def _write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text)


class CompositeSummaryPublisher:
    """Publishes to several publishers, each independently.

    Every publisher is attempted even if an earlier one fails; failures
    are collected into one ``PublishError``.
    """

    def __init__(self, publishers: list[SummaryPublisher]) -> None:
        self.publishers = list(publishers)

    async def publish(self, summary: LoadTestSummary) -> None:
        errors: list[str] = []
        for publisher in self.publishers:
            try:
                await publisher.publish(summary)
            except PublishError as exc:
                errors.append(str(exc))
        if errors:
            raise PublishError("; ".join(errors))


def build_publisher(
    *,
    publish_url: str = "",
    publish_timeout: float = 10.0,
    output_path: str | Path | None = None,
) -> SummaryPublisher | None:
    """Assemble the publishers requested by the caller.

    Args:
        publish_url: Endpoint for ``HttpSummaryPublisher``; empty disables it.
        publish_timeout: Timeout for the HTTP publisher, in seconds.
        output_path: File for ``JsonFileSummaryPublisher``; None disables it.

    Returns:
        A single publisher, a composite of several, or None if nothing
        was requested.
    """
    publishers: list[SummaryPublisher] = []
    if publish_url:
        publishers.append(HttpSummaryPublisher(publish_url, timeout=publish_timeout))
    if output_path is not None:
        publishers.append(JsonFileSummaryPublisher(output_path))

    if not publishers:
        return None
    if len(publishers) == 1:
        return publishers[0]
    return CompositeSummaryPublisher(publishers)
