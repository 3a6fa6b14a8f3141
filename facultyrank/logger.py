"""
Structured logging system for facultyrank.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for cache effectiveness and record store load.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks cache, store and prediction metrics.
    """

    def __init__(
        self,
        name: str = "facultyrank",
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
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()  # Remove existing handlers

        # Counters are bumped from enrichment worker threads
        self._metrics_lock = threading.Lock()
        self.metrics = {
            "cache_hits": 0,
            "cache_misses": 0,
            "cache_errors": 0,
            "store_queries": {},
            "predictions_completed": 0,
            "predictions_failed": 0,
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"facultyrank_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change the logger and console threshold. The file handler keeps DEBUG."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

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
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_cache_hit(self):
        """Increment cache hit counter."""
        with self._metrics_lock:
            self.metrics["cache_hits"] += 1

    def record_cache_miss(self):
        """Increment cache miss counter."""
        with self._metrics_lock:
            self.metrics["cache_misses"] += 1

    def record_cache_error(self, error_type: str):
        """Record a swallowed cache backend failure."""
        with self._metrics_lock:
            self.metrics["cache_errors"] += 1
            self._count_error(error_type)

    def record_store_query(self, table: str):
        """Record one round trip to the record store for a table."""
        with self._metrics_lock:
            queries = self.metrics["store_queries"]
            queries[table] = queries.get(table, 0) + 1

    def record_prediction(self, success: bool, error_type: Optional[str] = None):
        """Record the outcome of a scoring run."""
        with self._metrics_lock:
            if success:
                self.metrics["predictions_completed"] += 1
            else:
                self.metrics["predictions_failed"] += 1
                if error_type:
                    self._count_error(error_type)

    def _count_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        with self._metrics_lock:
            metrics_copy = dict(self.metrics)
            metrics_copy["store_queries"] = dict(self.metrics["store_queries"])
            metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])

        lookups = metrics_copy["cache_hits"] + metrics_copy["cache_misses"]
        if lookups > 0:
            metrics_copy["cache_hit_rate"] = round(metrics_copy["cache_hits"] / lookups, 3)

        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Session Metrics ===")
        hit_rate = metrics.get("cache_hit_rate", 0) * 100
        self.info(
            f"Cache: {metrics['cache_hits']} hits / {metrics['cache_misses']} misses "
            f"({hit_rate:.1f}% hit rate), {metrics['cache_errors']} errors"
        )
        self.info(
            f"Predictions: {metrics['predictions_completed']} completed, "
            f"{metrics['predictions_failed']} failed"
        )

        if metrics["store_queries"]:
            self.info("Store queries:")
            for table, count in metrics["store_queries"].items():
                self.info(f"  {table}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "facultyrank",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
