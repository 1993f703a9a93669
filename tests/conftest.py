"""Shared test fixtures for the LoadPulse test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from loadpulse.engine.protocol import SendResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Target HTTP server handlers
# =============================================================================


async def _ok_handler(request: web.Request) -> web.Response:
    """Always answer 200."""
    return web.json_response({"status": "ok"})


async def _status_handler(request: web.Request) -> web.Response:
    """Answer with the status in the path (e.g. /status/500)."""
    status = int(request.match_info["code"])
    return web.json_response({"status": status}, status=status)


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


RECEIVED = web.AppKey("received", list)


async def _collect_handler(request: web.Request) -> web.Response:
    """Store a posted summary message on the app for later inspection."""
    request.app[RECEIVED].append(await request.json())
    return web.json_response({"accepted": True})


async def _reject_handler(request: web.Request) -> web.Response:
    """Refuse a posted summary."""
    return web.json_response({"accepted": False}, status=503)


def _create_target_app() -> web.Application:
    """Build the target server app with all test routes."""
    app = web.Application()
    app[RECEIVED] = []
    app.router.add_get("/ok", _ok_handler)
    app.router.add_get("/status/{code}", _status_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_post("/collect", _collect_handler)
    app.router.add_post("/reject", _reject_handler)
    return app


# =============================================================================
# Fake transports
# =============================================================================


class FakeTransport:
    """In-memory transport answering with a fixed status after an optional delay.

    Records every send time and whether it was opened and closed, so tests
    can check rate spacing and resource release without a network.
    """

    def __init__(
        self,
        status_code: int | None = 200,
        *,
        error: str | None = None,
        delay: float = 0.0,
        raises: BaseException | None = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.delay = delay
        self.raises = raises
        self.sent_at: list[float] = []
        self.opened = False
        self.closed = False

    async def __aenter__(self) -> FakeTransport:
        self.opened = True
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.closed = True

    async def send(self, url: str) -> SendResult:
        loop = asyncio.get_running_loop()
        self.sent_at.append(loop.time())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return SendResult(error=self.error, latency_ms=self.delay * 1000)
        return SendResult(status_code=self.status_code, latency_ms=self.delay * 1000)


class FakeTransportFactory:
    """Creates FakeTransports with shared settings and remembers each one."""

    def __init__(self, **kwargs: object) -> None:
        self._kwargs = kwargs
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = FakeTransport(**self._kwargs)  # type: ignore[arg-type]
        self.created.append(transport)
        return transport

    @property
    def total_sent(self) -> int:
        return sum(len(t.sent_at) for t in self.created)


@pytest.fixture
def fake_transport_factory() -> FakeTransportFactory:
    """Factory of instant always-200 fake transports."""
    return FakeTransportFactory()


@pytest.fixture
def make_transport_factory() -> type[FakeTransportFactory]:
    """Return the FakeTransportFactory class for tests needing custom fakes."""
    return FakeTransportFactory


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def target_server() -> AsyncIterator[str]:
    """Aiohttp target server fixture.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    app = _create_target_app()
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
async def collector_server() -> AsyncIterator[tuple[str, list[dict[str, object]]]]:
    """Like ``target_server`` but also yields the list of POSTed summaries."""
    app = _create_target_app()
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}", app[RECEIVED]
    await runner.cleanup()


@pytest.fixture
def sync_target_server() -> Iterator[str]:
    """Target server running in a background thread for sync tests.

    Useful for CLI tests where ``asyncio.run`` blocks the main thread.
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        app = _create_target_app()
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)
