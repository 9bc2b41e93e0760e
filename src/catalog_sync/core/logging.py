"""
Logging utilities for the catalog sync framework.

Every batch outcome is written both to the console and to an append-only
sync log file. Log lines may carry a run_id and sku passed through the
logging 'extra' parameter so one batch can be traced end to end.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union


PACKAGE_LOGGER = "catalog_sync"
CONTEXT_FIELDS = ("run_id", "sku", "offset")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Context fields if present (run_id, sku, offset)
    - Exception text if present
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with context.

    Format: TIMESTAMP [LEVEL] LOGGER - MESSAGE [run_id=X sku=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        else:
            fmt = "[%(levelname)s] %(name)s - %(message)s"
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        context_parts = []
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    structured: bool = False,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure logging for the catalog_sync package.

    Installs a console handler and, when log_file is given, an appending
    RotatingFileHandler. Calling it again replaces the handlers so repeated
    CLI invocations in one process do not duplicate output.

    Args:
        level: Logging level (default: INFO)
        log_file: Path of the sync log file (optional)
        structured: If True, JSON-structured console output
        max_bytes: Rotate the log file after this many bytes
        backup_count: Number of rotated files to keep

    Returns:
        The package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    if structured:
        console.setFormatter(StructuredFormatter())
    else:
        console.setFormatter(HumanReadableFormatter())
    package_logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            mode="a",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(HumanReadableFormatter())
        package_logger.addHandler(file_handler)

    return package_logger


def get_log_tail(log_file: Union[str, Path], chars: int = 2000) -> str:
    """
    Return the last `chars` characters of the sync log.

    Returns an empty string if the file does not exist or cannot be read.
    """
    path = Path(log_file)
    if not path.exists():
        return ""

    try:
        size = path.stat().st_size
        with open(path, "rb") as f:
            if size > chars:
                f.seek(-chars, 2)
            data = f.read(chars)
    except OSError:
        return ""

    return data.decode("utf-8", errors="replace")
