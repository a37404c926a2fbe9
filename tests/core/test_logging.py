"""Tests for structlog configuration."""

from __future__ import annotations

import json

import structlog
from structlog.testing import capture_logs

from sqlspine.core.logging import LogContext, configure_logging, get_logger


class TestConfigureLogging:
    def test_json_output_to_stderr(self, capsys):
        configure_logging(level="INFO", json_format=True, service="sqlspine-test")
        get_logger("sqlspine.test").info("migration.step.applied", migration_id="1")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "migration.step.applied"
        assert payload["migration_id"] == "1"
        assert payload["service.name"] == "sqlspine-test"
        assert payload["log.level"] == "info"
        assert "@timestamp" in payload

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("sqlspine.test").info("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_console_output(self, capsys):
        configure_logging(level="INFO", json_format=False)
        get_logger("sqlspine.test").warning("migration.ledger.dropped")
        assert "migration.ledger.dropped" in capsys.readouterr().err


class TestLogContext:
    def test_binds_and_unbinds(self):
        with LogContext(run_id="abc123"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "abc123"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_capture(self):
        with capture_logs() as logs:
            get_logger("sqlspine.test").info("event.one", key="value")
        assert logs == [{"event": "event.one", "key": "value", "log_level": "info"}]
