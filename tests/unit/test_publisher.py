"""Tests for summary publishers that need no network."""

from __future__ import annotations

import json
import threading
from typing import TYPE_CHECKING

import pytest

from loadpulse._internal.errors import PublishError
from loadpulse.metrics.aggregator import ResultCounts
from loadpulse.metrics.summary import build_summary
from loadpulse.reporting.publisher import (
    CompositeSummaryPublisher,
    HttpSummaryPublisher,
    JsonFileSummaryPublisher,
    build_publisher,
    serialize_message,
)

if TYPE_CHECKING:
    from pathlib import Path

    from loadpulse.metrics.summary import LoadTestSummary


def _summary() -> LoadTestSummary:
    return build_summary(
        ResultCounts(success_count=10, failure_count=1), 5.0, "http://target", "t-42"
    )


class _FailingPublisher:
    async def publish(self, summary: LoadTestSummary) -> None:
        raise PublishError("queue unavailable")


class _RecordingPublisher:
    def __init__(self) -> None:
        self.received: list[LoadTestSummary] = []

    async def publish(self, summary: LoadTestSummary) -> None:
        self.received.append(summary)


class TestSerializeMessage:
    def test_compact_camel_case_json(self) -> None:
        text = serialize_message(_summary())
        assert " " not in text
        assert json.loads(text) == {
            "testId": "t-42",
            "duration": 5.0,
            "successfulRequests": 10,
            "failedRequests": 1,
            "tps": 2.0,
            "targetUrl": "http://target",
        }


class TestJsonFileSummaryPublisher:
    async def test_writes_full_summary(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "summary.json"
        await JsonFileSummaryPublisher(path).publish(_summary())

        data = json.loads(path.read_text())
        assert data["test_id"] == "t-42"
        assert data["successful_requests"] == 10
        assert data["transactions_per_second"] == 2.0

    async def test_write_runs_off_the_event_loop_thread(self, tmp_path: Path) -> None:
        class _ThreadRecordingPublisher(JsonFileSummaryPublisher):
            write_thread: int | None = None

            def _write(self, text: str) -> None:
                type(self).write_thread = threading.get_ident()
                super()._write(text)

        path = tmp_path / "summary.json"
        await _ThreadRecordingPublisher(path).publish(_summary())

        assert _ThreadRecordingPublisher.write_thread is not None
        assert _ThreadRecordingPublisher.write_thread != threading.get_ident()
        assert json.loads(path.read_text())["test_id"] == "t-42"

    async def test_unwritable_path_raises_publish_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(PublishError, match="Could not write summary"):
            await JsonFileSummaryPublisher(blocker / "summary.json").publish(_summary())


class TestCompositeSummaryPublisher:
    async def test_all_publishers_attempted(self) -> None:
        first, last = _RecordingPublisher(), _RecordingPublisher()
        composite = CompositeSummaryPublisher([first, _FailingPublisher(), last])

        with pytest.raises(PublishError, match="queue unavailable"):
            await composite.publish(_summary())

        assert len(first.received) == 1
        assert len(last.received) == 1

    async def test_success_raises_nothing(self) -> None:
        recorder = _RecordingPublisher()
        await CompositeSummaryPublisher([recorder]).publish(_summary())
        assert recorder.received == [_summary()]


class TestBuildPublisher:
    def test_nothing_requested(self) -> None:
        assert build_publisher() is None

    def test_http_only(self) -> None:
        publisher = build_publisher(publish_url="http://collector", publish_timeout=3.0)
        assert isinstance(publisher, HttpSummaryPublisher)
        assert publisher.timeout == 3.0

    def test_file_only(self, tmp_path: Path) -> None:
        publisher = build_publisher(output_path=tmp_path / "s.json")
        assert isinstance(publisher, JsonFileSummaryPublisher)

    def test_both(self, tmp_path: Path) -> None:
        publisher = build_publisher(publish_url="http://c", output_path=tmp_path / "s.json")
        assert isinstance(publisher, CompositeSummaryPublisher)
        assert len(publisher.publishers) == 2
