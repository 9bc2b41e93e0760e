"""
Unit tests for logging utilities.
"""

import json
import logging

import pytest

from catalog_sync.core.logging import (
    PACKAGE_LOGGER, HumanReadableFormatter, StructuredFormatter, configure_logging, get_log_tail,
)


def make_record(message="Batch done", **extra):
    record = logging.LogRecord(
        name="catalog_sync.runner",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_package_logger():
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)


@pytest.mark.unit
class TestFormatters:
    """Tests for the log formatters."""

    def test_structured_includes_context(self):
        line = StructuredFormatter().format(make_record(run_id="r-1", sku="A1"))
        entry = json.loads(line)

        assert entry["message"] == "Batch done"
        assert entry["level"] == "INFO"
        assert entry["run_id"] == "r-1"
        assert entry["sku"] == "A1"
        assert "timestamp" in entry
        assert "offset" not in entry

    def test_human_readable_context_suffix(self):
        formatter = HumanReadableFormatter(include_timestamp=False)

        assert formatter.format(make_record()) == "[INFO] catalog_sync.runner - Batch done"
        assert formatter.format(make_record(offset=20)).endswith("[offset=20]")


@pytest.mark.unit
@pytest.mark.usefixtures("restore_package_logger")
class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_writes_to_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "sync.log"
        configure_logging(level=logging.INFO, log_file=log_file)

        logging.getLogger("catalog_sync.runner").info("Pointer reset to 0")
        for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
            handler.flush()

        assert "Pointer reset to 0" in log_file.read_text(encoding="utf-8")

    def test_reconfigure_replaces_handlers(self, tmp_path):
        configure_logging(log_file=tmp_path / "a.log")
        configure_logging(log_file=tmp_path / "a.log")

        assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 2


@pytest.mark.unit
class TestLogTail:
    """Tests for get_log_tail()."""

    def test_missing_file(self, tmp_path):
        assert get_log_tail(tmp_path / "none.log") == ""

    def test_returns_last_chars(self, tmp_path):
        path = tmp_path / "sync.log"
        path.write_text("a" * 100 + "END", encoding="utf-8")

        assert get_log_tail(path, chars=3) == "END"
        assert get_log_tail(path) == "a" * 100 + "END"
