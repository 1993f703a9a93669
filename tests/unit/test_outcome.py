"""Tests for request outcome classification."""

from __future__ import annotations

import pytest

from loadpulse.metrics.outcome import (
    OutcomeKind,
    classify_error,
    classify_status,
    describe_error,
    is_success_status,
)


class TestClassifyStatus:
    @pytest.mark.parametrize("status", [200, 201, 204, 299])
    def test_2xx_is_success(self, status: int) -> None:
        outcome = classify_status(status, latency_ms=3.0, user_id=2)
        assert outcome.kind is OutcomeKind.SUCCESS
        assert outcome.is_success
        assert outcome.status_code == status
        assert outcome.error is None
        assert outcome.latency_ms == 3.0
        assert outcome.user_id == 2

    @pytest.mark.parametrize("status", [100, 199, 301, 304, 404, 429, 500, 503])
    def test_other_status_is_failure(self, status: int) -> None:
        outcome = classify_status(status)
        assert outcome.kind is OutcomeKind.FAILURE_STATUS
        assert not outcome.is_success
        assert outcome.status_code == status

    def test_is_success_status_bounds(self) -> None:
        assert not is_success_status(199)
        assert is_success_status(200)
        assert is_success_status(299)
        assert not is_success_status(300)


class TestClassifyError:
    def test_exception_becomes_failure_error(self) -> None:
        outcome = classify_error(ConnectionRefusedError("refused"), user_id=4)
        assert outcome.kind is OutcomeKind.FAILURE_ERROR
        assert outcome.status_code is None
        assert outcome.error == "ConnectionRefusedError: refused"
        assert outcome.error_type == "ConnectionRefusedError"
        assert outcome.user_id == 4

    def test_message_is_kept_verbatim(self) -> None:
        outcome = classify_error("ClientConnectorError: cannot connect")
        assert outcome.error == "ClientConnectorError: cannot connect"
        assert outcome.error_type == "ClientConnectorError"

    def test_success_has_no_error_type(self) -> None:
        assert classify_status(200).error_type is None


class TestDescribeError:
    def test_includes_type_and_message(self) -> None:
        assert describe_error(ValueError("bad")) == "ValueError: bad"

    def test_empty_message_uses_type_name(self) -> None:
        assert describe_error(TimeoutError()) == "TimeoutError"
