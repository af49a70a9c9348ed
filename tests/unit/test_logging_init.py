from __future__ import annotations

import logging
from io import StringIO

from fuel_import.logging.init import (
    SUMMARY_LEVEL,
    LabeledFormatter,
    enable_debug,
    get_logger,
    log_summary,
    setup_logging,
)


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == "fuel_import"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_setup_logging_is_idempotent():
    first = setup_logging()
    second = setup_logging()
    assert first is second
    assert len(second.handlers) == 1
    assert get_logger() is first


def test_labeled_prefixes():
    out = StringIO()
    logger = logging.getLogger("test_fuel_import_labels")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    handler = logging.StreamHandler(out)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "Test summary message")

    lines = out.getvalue().strip().split("\n")
    assert lines == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY Test summary message",
    ]


def test_module_loggers_share_handler(capsys):
    setup_logging()
    logging.getLogger("fuel_import.services.orchestrator").info("from child")
    assert "INFO from child" in capsys.readouterr().out


def test_enable_debug_and_summary(capsys):
    setup_logging()
    get_logger().debug("hidden")
    enable_debug()
    get_logger().debug("shown")
    log_summary("file=x.xlsx sessions=0")
    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "DEBUG shown" in out
    assert "SUMMARY file=x.xlsx sessions=0" in out
