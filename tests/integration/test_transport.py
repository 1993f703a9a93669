"""Tests for HttpTransport against a local aiohttp server."""

from __future__ import annotations

import pytest

from loadpulse.engine.transport import HttpTransport


class TestHttpTransport:
    """Tests for the HttpTransport class."""

    async def test_success_status(self, target_server: str):
        """A 200 response is returned with its status and a latency."""
        async with HttpTransport() as transport:
            result = await transport.send(f"{target_server}/ok")

        assert result.status_code == 200
        assert result.error is None
        assert result.latency_ms >= 0.0

    async def test_error_status_is_not_raised(self, target_server: str):
        """A 500 response is a status, not a transport error."""
        async with HttpTransport() as transport:
            result = await transport.send(f"{target_server}/status/500")

        assert result.status_code == 500
        assert result.error is None

    async def test_latency_reflects_server_delay(self, target_server: str):
        async with HttpTransport() as transport:
            result = await transport.send(f"{target_server}/delay?delay=0.1")

        assert result.status_code == 200
        assert result.latency_ms >= 90.0

    async def test_connection_refused(self):
        """A refused connection becomes an error result."""
        async with HttpTransport(timeout=2.0) as transport:
            result = await transport.send("http://127.0.0.1:1/")

        assert result.status_code is None
        assert result.error is not None
        assert result.error.startswith("ClientConnectorError")

    async def test_timeout(self, target_server: str):
        """A request slower than the timeout becomes an error result."""
        async with HttpTransport(timeout=0.1) as transport:
            result = await transport.send(f"{target_server}/delay?delay=1.0")

        assert result.status_code is None
        assert result.error is not None
        assert "Timeout" in result.error

    async def test_reuses_session_across_requests(self, target_server: str):
        async with HttpTransport(pool_size=1) as transport:
            statuses = [(await transport.send(f"{target_server}/ok")).status_code for _ in range(3)]
        assert statuses == [200, 200, 200]

    async def test_closed_after_context(self):
        transport = HttpTransport()
        async with transport:
            assert transport.is_open
        assert not transport.is_open

    async def test_send_outside_context_raises(self):
        """Using the transport without entering it raises RuntimeError."""
        with pytest.raises(RuntimeError, match="async context manager"):
            await HttpTransport().send("http://127.0.0.1:1/")
