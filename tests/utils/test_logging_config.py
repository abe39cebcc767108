"""Unit tests for logging configuration

Tests verify that structlog is configured with:
- JSON output written to logs/feedbackflow.log
- Event-name style entries carrying keyword context
- Exception stack traces when exc_info=True
- Automatic log directory creation
- A console echo that shows DEBUG only when verbose
- Client library loggers capped at WARNING
"""

import json
import logging
import os
import shutil
import tempfile

import pytest
import structlog

from feedbackflow.utils.logging_config import CLIENT_LIBRARY_LOGGERS, setup_logging


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for test logs."""
    temp_dir = tempfile.mkdtemp(prefix="test_logs_")
    yield temp_dir
    if os.path.exists(temp_dir):
        shutil.rmtree(temp_dir)


@pytest.fixture
def clean_logging():
    """Reset logging configuration after each test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def _read_entry(log_file, event):
    with open(log_file, "r", encoding="utf-8") as f:
        matching = [line for line in f.readlines() if event in line]
    assert matching, f"no log line for {event}"
    return json.loads(matching[0])


class TestSetupLogging:
    """Test setup_logging() function."""

    def test_creates_logs_directory(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        assert not os.path.exists(log_dir)

        setup_logging(log_dir=log_dir)

        assert os.path.isdir(log_dir)

    def test_writes_default_log_file(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        structlog.get_logger().info("test_message")

        assert os.path.isfile(os.path.join(log_dir, "feedbackflow.log"))

    def test_custom_log_filename(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir, log_filename="fetch.log")

        structlog.get_logger().info("test_message")

        assert os.path.exists(os.path.join(log_dir, "fetch.log"))

    def test_console_hides_debug_by_default(self, temp_log_dir, clean_logging, capsys):
        """DEBUG entries reach the file even when the console only shows INFO and up."""
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        structlog.get_logger("test.console").debug("quiet_debug_event")

        entry = _read_entry(os.path.join(log_dir, "feedbackflow.log"), "quiet_debug_event")
        assert entry["level"] == "debug"
        assert "quiet_debug_event" not in capsys.readouterr().out

    def test_verbose_echoes_debug(self, temp_log_dir, clean_logging, capsys):
        setup_logging(log_dir=os.path.join(temp_log_dir, "logs"), verbose=True)

        structlog.get_logger("test.console").debug("page_fetched_debug", page_number=2)

        assert "page_fetched_debug" in capsys.readouterr().out

    def test_client_library_loggers_capped_at_warning(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        logging.getLogger("urllib3.connectionpool").debug("Starting new HTTPS connection")
        logging.getLogger("asyncprawcore").warning("rate_limit_notice")

        with open(os.path.join(log_dir, "feedbackflow.log"), "r", encoding="utf-8") as f:
            contents = f.read()
        assert "Starting new HTTPS connection" not in contents
        assert "rate_limit_notice" in contents
        for name in CLIENT_LIBRARY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestJSONEntries:
    """Test entries are JSON objects with event, level, timestamp, logger and context."""

    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error", "critical"])
    def test_every_level_writes_json(self, temp_log_dir, clean_logging, level):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        logger = structlog.get_logger("feedbackflow.paging")
        getattr(logger, level)(f"{level}_page_event", collection="issues", page_number=3)

        entry = _read_entry(os.path.join(log_dir, "feedbackflow.log"), f"{level}_page_event")
        assert entry["event"] == f"{level}_page_event"
        assert entry["level"] == level
        assert entry["collection"] == "issues"
        assert entry["page_number"] == 3
        assert entry["logger"] == "feedbackflow.paging"
        assert "timestamp" in entry

    def test_timestamp_is_iso_utc(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        structlog.get_logger("test.timestamp").info("timestamp_test")

        timestamp = _read_entry(os.path.join(log_dir, "feedbackflow.log"), "timestamp_test")["timestamp"]
        assert "T" in timestamp
        assert timestamp.endswith("Z") or "+" in timestamp

    def test_nested_context_preserved(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        structlog.get_logger("test.fields").warning(
            "graphql_errors_test",
            errors=[{"message": "Field 'discussions' doesn't exist"}],
            retry=False,
        )

        entry = _read_entry(os.path.join(log_dir, "feedbackflow.log"), "graphql_errors_test")
        assert entry["errors"] == [{"message": "Field 'discussions' doesn't exist"}]
        assert entry["retry"] is False


class TestExceptionLogging:
    """Test exc_info=True includes the stack trace."""

    def test_error_with_exception(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        try:
            raise ValueError("Budget exceeded for page 4")
        except ValueError:
            structlog.get_logger("test.exception").error("page_failed_with_exception", exc_info=True)

        entry = _read_entry(os.path.join(log_dir, "feedbackflow.log"), "page_failed_with_exception")
        assert "Traceback" in entry["exception"]
        assert "ValueError" in entry["exception"]
        assert "Budget exceeded for page 4" in entry["exception"]

    def test_error_without_exc_info_has_no_exception_field(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir)

        structlog.get_logger("test.no_exception").error("plain_error_event", reason="Validation failed")

        entry = _read_entry(os.path.join(log_dir, "feedbackflow.log"), "plain_error_event")
        assert "exception" not in entry
