"""Tests for logging configuration and formatters."""

import json
import logging
import sys
from datetime import datetime, timezone

import pytest

from jobalerts.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from jobalerts.logging.context import log_context


def _record(msg="Sweep completed", level=logging.INFO, **extra):
    record = logging.getLogger("jobalerts.test").makeRecord(
        "jobalerts.test", level, "runner.py", 1, msg, (), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    def test_mandatory_fields(self):
        log_obj = json.loads(JSONFormatter().format(_record()))

        assert log_obj["level"] == "INFO"
        assert log_obj["logger"] == "jobalerts.test"
        assert log_obj["message"] == "Sweep completed"
        assert log_obj["timestamp"].endswith("Z")

    def test_timestamp_has_millisecond_precision(self):
        record = _record()
        record.created = datetime(2025, 11, 10, 12, 0, 0, 123456, tzinfo=timezone.utc).timestamp()

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["timestamp"] == "2025-11-10T12:00:00.123Z"

    def test_extra_fields(self):
        as_of = datetime(2025, 11, 10, 12, 0, tzinfo=timezone.utc)
        record = _record(event="sweep.run.completed", sent=3, as_of=as_of, job_ids=["j1"])

        log_obj = json.loads(JSONFormatter().format(record))

        assert log_obj["event"] == "sweep.run.completed"
        assert log_obj["sent"] == 3
        assert log_obj["as_of"] == "2025-11-10T12:00:00+00:00"
        assert log_obj["job_ids"] == ["j1"]

    def test_unserialisable_values_become_strings(self):
        log_obj = json.loads(JSONFormatter().format(_record(error=ValueError("bad"))))

        assert log_obj["error"] == "bad"

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.getLogger("jobalerts.test").makeRecord(
                "jobalerts.test", logging.ERROR, "x.py", 1, "failed", (), sys.exc_info()
            )

        log_obj = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in log_obj["exc_info"]


class TestKeyValueFormatter:
    def test_basic_line(self):
        formatter = KeyValueFormatter("[%(levelname)s] %(name)s: %(message)s")

        assert formatter.format(_record()) == "[INFO] jobalerts.test: Sweep completed"

    def test_extras_are_sorted_and_quoted(self):
        formatter = KeyValueFormatter("%(message)s")
        record = _record(
            frequency="daily",
            alert_id="alert-1",
            error_message="smtp down",
            skipped=False,
            message_id=None,
        )

        output = formatter.format(record)

        assert output == (
            'Sweep completed alert_id=alert-1 error_message="smtp down" '
            "frequency=daily message_id=null skipped=false"
        )

    def test_service_fields_are_hidden(self):
        formatter = KeyValueFormatter("%(message)s")

        output = formatter.format(_record(service="job-alerts", environment="local"))

        assert output == "Sweep completed"


class TestContextualFilter:
    def test_adds_service_fields(self):
        record = _record()

        assert ContextualFilter(environment="test").filter(record) is True
        assert record.service == "job-alerts"
        assert record.environment == "test"

    def test_adds_context_fields(self):
        record = _record()

        with log_context(run_id="abc123", frequency="weekly"):
            ContextualFilter().filter(record)

        assert record.run_id == "abc123"
        assert record.frequency == "weekly"

    def test_explicit_extra_wins_over_context(self):
        record = _record(alert_id="explicit")

        with log_context(alert_id="from-context"):
            ContextualFilter().filter(record)

        assert record.alert_id == "explicit"


class TestConfigureLogging:
    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            configure_logging(format_type="xml")

    def test_json_format(self, restore_root_logger):
        configure_logging(level="DEBUG", format_type="json", environment="test")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert isinstance(root.handlers[0].filters[0], ContextualFilter)

    def test_key_value_format_quiets_scheduler(self, restore_root_logger):
        configure_logging(level="info", format_type="key-value")

        assert isinstance(restore_root_logger.handlers[0].formatter, KeyValueFormatter)
        assert logging.getLogger("apscheduler").level == logging.WARNING
