"""
Tests for logging setup.
"""

import json
import logging

import pytest
import structlog

from teamsync.utils.logging import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """Test handler wiring."""

    def test_file_handlers(self, temp_dir, restore_logging):
        result = setup_logging(
            app_name="teamsync-test",
            log_level="debug",
            log_dir=temp_dir,
            enable_console=False,
        )

        assert result["log_dir"] == temp_dir
        assert set(result["loggers"]) >= {"main", "sync", "transport", "server"}
        assert (temp_dir / "teamsync-test.log").exists()
        assert (temp_dir / "teamsync-test-errors.log").exists()
        assert logging.getLogger().level == logging.DEBUG

        get_logger("teamsync.test").error("something_failed", detail=1)
        for handler in logging.getLogger().handlers:
            handler.flush()

        errors = (temp_dir / "teamsync-test-errors.log").read_text().strip().splitlines()
        assert any("something_failed" in line for line in errors)


class TestJSONFormatter:
    """Test the file formatter."""

    def test_extra_fields(self):
        record = logging.LogRecord("teamsync.sync", logging.INFO, __file__, 10, "poll %s", ("ok",), None)
        record.last_updated = 42
        record.payload = object()

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "poll ok"
        assert entry["logger"] == "teamsync.sync"
        assert entry["level"] == "INFO"
        assert entry["last_updated"] == 42
        assert isinstance(entry["payload"], str)
