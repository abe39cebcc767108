"""Logging Configuration for FeedbackFlow

Package modules log through ``structlog.get_logger()`` with snake_case event
names and keyword context::

    logger.info("page_fetched", collection="issues", page_number=3, item_count=100)

The pipeline scripts call ``setup_logging`` once at startup. Entries are JSON:
every level goes to the log file and the console echoes INFO and up (DEBUG
with ``--verbose``). The HTTP and SDK libraries underneath the fetchers log
their own request chatter; it is capped at WARNING so the fetch events stay
readable.

Usage:
    >>> from feedbackflow.utils.logging_config import setup_logging
    >>> setup_logging(log_dir="logs", verbose=True)
"""

import logging
import sys
from pathlib import Path

import structlog

# Loggers of the client libraries used by the source adapters
CLIENT_LIBRARY_LOGGERS = ("urllib3", "asyncprawcore", "asyncpraw", "openai", "httpx")


def setup_logging(
    log_dir: str = "logs",
    log_filename: str = "feedbackflow.log",
    verbose: bool = False,
) -> None:
    """Configure structlog to write JSON entries to a file and stdout.

    Args:
        log_dir: Directory for log files, created if missing (default: "logs")
        log_filename: Name of the log file (default: "feedbackflow.log")
        verbose: Echo DEBUG entries (retries, per-page progress) to stdout too

    Log entry format (JSON):
        {
            "event": "page_fetch_retry",
            "level": "warning",
            "timestamp": "2026-02-10T12:34:56.789Z",
            "logger": "feedbackflow.paging",
            "collection": "issues",
            "page_number": 3,
            ...
        }
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    handlers = [
        (logging.FileHandler(str(log_path / log_filename), encoding="utf-8"), logging.DEBUG),
        (logging.StreamHandler(sys.stdout), logging.DEBUG if verbose else logging.INFO),
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    for handler, level in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in CLIENT_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
