"""Tests for logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from reserve_snapshot.utils.logger import ROOT_LOGGER_NAME, configure_logging, get_logger, resolve_level


@pytest.mark.parametrize(
    ("level", "expected"),
    [(-1, logging.DEBUG), (0, logging.DEBUG), (2, logging.INFO), (3, logging.WARNING), (5, logging.CRITICAL), (9, logging.CRITICAL)],
)
def test_resolve_level(level: int, expected: int) -> None:
    """Test CLI verbosity maps onto logging levels, clamped to the known range."""
    assert resolve_level(level) == expected


def test_configure_logging_replaces_handlers(tmp_path: Path) -> None:
    """Test reconfiguring does not stack duplicate handlers."""
    configure_logging(2, tmp_path)
    configure_logging(4, tmp_path)

    handlers = logging.getLogger(ROOT_LOGGER_NAME).handlers
    assert len(handlers) == 2
    assert handlers[0].level == logging.ERROR
    assert (tmp_path / "reserve_snapshot.log").exists()

    configure_logging(2, None)
    assert len(logging.getLogger(ROOT_LOGGER_NAME).handlers) == 1


def test_metrics_summary(caplog: pytest.LogCaptureFixture) -> None:
    """Test counters accumulate and are reported in the summary."""
    logger = get_logger("reserve_snapshot.tests")
    logger.increment_metric("successful_cycles")
    logger.increment_metric("successful_cycles")

    with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
        logger.log_summary()

    assert logger.metrics == {"successful_cycles": 2.0}
    assert "successful_cycles: 2.00" in caplog.text
