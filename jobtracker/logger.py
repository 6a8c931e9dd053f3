"""
Structured logging for the job tracker.

Console and file outputs with a shared format, plus counters that describe
how the record store is behaving (backend traffic, skipped entries, failed
writes).
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .env import get_settings


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


class StructuredLogger:
    """
    Logger with console and file handlers.
    Keeps running counters for store operations.
    """

    def __init__(
        self,
        name: str = "jobtracker",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(_level(level))
        self.logger.handlers.clear()
        self.logger.propagate = False

        self.metrics = {
            "backend_calls": 0,
            "records_listed": 0,
            "records_skipped": 0,
            "records_written": 0,
            "write_failures": 0,
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(_level(level))
            console_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"jobtracker_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # file always gets everything
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_backend_call(self):
        """Increment backend call counter."""
        self.metrics["backend_calls"] += 1

    def record_listed(self, count: int):
        """Add records returned by a list operation."""
        self.metrics["records_listed"] += count

    def record_skipped(self, reason: str):
        """Record a stored entry that list() had to skip."""
        self.metrics["records_skipped"] += 1
        self._count_error(reason)

    def record_write(self):
        """Record a successful record write."""
        self.metrics["records_written"] += 1

    def record_write_failure(self, error_type: str):
        """Record a failed record write."""
        self.metrics["write_failures"] += 1
        self._count_error(error_type)

    def _count_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a copy of current metrics."""
        metrics_copy = dict(self.metrics)
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        attempted = metrics["records_written"] + metrics["write_failures"]
        write_rate = 0
        if attempted > 0:
            write_rate = round(metrics["records_written"] / attempted * 100, 1)

        self.info("=== Store Session Metrics ===")
        self.info(f"Backend Calls: {metrics['backend_calls']}")
        self.info(f"Records Listed: {metrics['records_listed']} (skipped {metrics['records_skipped']})")
        self.info(f"Writes: {metrics['records_written']}/{attempted} ({write_rate}% success)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "jobtracker",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Unset options fall back to the environment settings
    (JOBTRACKER_LOG_LEVEL, JOBTRACKER_LOG_DIR, JOBTRACKER_LOG_FILE).

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        settings = get_settings()
        kwargs.setdefault("log_dir", settings.log_dir)
        kwargs.setdefault("enable_file", settings.log_to_file)
        _global_logger = StructuredLogger(
            name=name, level=level or settings.log_level, **kwargs
        )

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
