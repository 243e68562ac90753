"""Structured logging configuration for snapshot runs."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from reserve_snapshot.utils.config import DEFAULT_LOG_DIR, DEFAULT_LOG_LEVEL

ROOT_LOGGER_NAME = "reserve_snapshot"
LOG_FILE_NAME = "reserve_snapshot.log"

# CLI verbosity levels: 0 trace, 1 debug, 2 info, 3 warn, 4 error, 5 fatal
LOG_LEVELS = {
    0: logging.DEBUG,
    1: logging.DEBUG,
    2: logging.INFO,
    3: logging.WARNING,
    4: logging.ERROR,
    5: logging.CRITICAL,
}


def resolve_level(level: int) -> int:
    """Map a CLI verbosity level to a logging level, clamping out-of-range values."""
    return LOG_LEVELS[min(max(level, 0), max(LOG_LEVELS))]


def configure_logging(level: int = DEFAULT_LOG_LEVEL, log_dir: Path | None = DEFAULT_LOG_DIR) -> None:
    """
    Attach console and file handlers to the package root logger.

    Calling this again replaces the handlers, so the level can be changed
    between runs.

    Args:
        level: CLI verbosity level (0-5)
        log_dir: Directory for the log file; None disables file logging
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(resolve_level(level))
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ),
    )
    root.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            ),
        )
        root.addHandler(file_handler)


class SnapshotLogger:
    """Logger with per-run metrics tracking."""

    def __init__(self, name: str) -> None:
        """
        Initialize snapshot logger.

        Args:
            name: Logger name (usually module name)
        """
        self.logger = logging.getLogger(name)
        self.metrics: dict[str, float] = {}

    def debug(self, message: str, *args: object, **kwargs: object) -> None:
        """Log debug message."""
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: object, **kwargs: object) -> None:
        """Log info message."""
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: object, **kwargs: object) -> None:
        """Log warning message."""
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args: object, **kwargs: object) -> None:
        """Log error message."""
        self.logger.error(message, *args, **kwargs)

    def exception(self, message: str, *args: object, **kwargs: object) -> None:
        """Log exception with traceback."""
        self.logger.exception(message, *args, **kwargs)

    def record_metric(self, name: str, value: float) -> None:
        """
        Record a run metric.

        Args:
            name: Metric name (e.g., "cycles", "last_cycle_seconds")
            value: Metric value
        """
        self.metrics[name] = value
        self.debug(f"Metric {name}: {value:.2f}")

    def increment_metric(self, name: str, amount: float = 1.0) -> None:
        """Add ``amount`` to a counter metric."""
        self.record_metric(name, self.metrics.get(name, 0.0) + amount)

    def log_summary(self) -> None:
        """Log summary of all recorded metrics."""
        if not self.metrics:
            return

        self.info("=== Snapshot Summary ===")
        for name, value in self.metrics.items():
            self.info(f"{name}: {value:.2f}")
        self.info("========================")


def get_logger(name: str) -> SnapshotLogger:
    """
    Get or create a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        SnapshotLogger instance
    """
    return SnapshotLogger(name)
