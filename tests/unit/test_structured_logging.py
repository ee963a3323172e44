"""Tests for structured logging helpers."""

import logging

import pytest

from tripboard.utils.logging import StructuredFormatter, StructuredOperationLogger


def test_formatter_appends_structured_json() -> None:
    record = logging.LogRecord("tripboard", logging.INFO, __file__, 1, "Activity added", None, None)
    record.structured = {"day_id": "jour1", "prix": "€"}

    output = StructuredFormatter("%(message)s").format(record)

    assert output == 'Activity added {"day_id": "jour1", "prix": "€"}'


def test_formatter_without_structured_data() -> None:
    record = logging.LogRecord("tripboard", logging.INFO, __file__, 1, "plain", None, None)
    assert StructuredFormatter("%(message)s").format(record) == "plain"


def test_operation_logger_levels(caplog: pytest.LogCaptureFixture) -> None:
    op_logger = StructuredOperationLogger()

    with caplog.at_level(logging.INFO, logger="tripboard.utils.logging"):
        op_logger.log_operation("update", "success", 1.234, path="trip/budget")
        op_logger.log_operation("set", "error", 9.0, path="trip", error_reason="OperationalError")

    success, failure = caplog.records
    assert success.levelno == logging.INFO
    assert success.structured == {"operation": "update", "outcome": "success", "latency_ms": 1.23, "path": "trip/budget"}
    assert failure.levelno == logging.WARNING
    assert failure.structured["error_reason"] == "OperationalError"
