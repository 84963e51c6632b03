"""Tests for loguru sink setup."""

import sys

from loguru import logger

from ai_receptionist.log import setup_logging


def test_setup_logging_writes_file_sink(tmp_path):
    log_file = tmp_path / "agent.log"
    try:
        setup_logging(level="DEBUG", log_file=str(log_file))
        logger.info("[Test] file sink check")
        logger.complete()
    finally:
        logger.remove()
        logger.add(sys.stderr, level="WARNING")

    content = log_file.read_text(encoding="utf-8")
    assert "[Test] file sink check" in content
