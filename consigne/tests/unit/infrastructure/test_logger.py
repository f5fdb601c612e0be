"""
Unit tests for structured logging helpers.

Usage:
    pytest consigne/tests/unit/infrastructure/test_logger.py
"""

import json
import logging

import pytest

from consigne.infrastructure.monitoring.logger import (
    JSONFormatter,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "consigne.test", logging.INFO, __file__, 10, "Refund %s", ("done",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Unit tests for JSON formatting and correlation ids."""

    def test_json_formatter(self):
        """Test schema, extras and correlation id."""
        correlation_id = set_correlation_id("op-123")

        payload = json.loads(
            JSONFormatter().format(_record(user_address="addr_test1qzjohn"))
        )

        assert correlation_id == "op-123"
        assert payload["message"] == "Refund done"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "consigne.test"
        assert payload["correlation_id"] == "op-123"
        assert payload["user_address"] == "addr_test1qzjohn"
        assert payload["line"] == 10

    def test_generated_correlation_id(self):
        """Test a fresh id is generated when none is given."""
        correlation_id = set_correlation_id()

        assert get_correlation_id() == correlation_id
        assert len(correlation_id) == 36

    @pytest.mark.parametrize("json_logs", [True, False])
    def test_setup_logging(self, restore_root_logger, json_logs):
        """Test root logger gets one handler at the requested level."""
        setup_logging(level="warning", json_logs=json_logs)

        assert restore_root_logger.level == logging.WARNING
        assert len(restore_root_logger.handlers) == 1
        formatter = restore_root_logger.handlers[0].formatter
        assert isinstance(formatter, JSONFormatter) is json_logs
