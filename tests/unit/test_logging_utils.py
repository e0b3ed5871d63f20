"""Tests for session logging setup and the package logger accessor."""

import logging

import pytest

from selekAgent.utils.logging_utils import PACKAGE_LOGGER, get_logger, log_permission_decision, setup_logging


@pytest.fixture
def package_logger():
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    get_logger.cache_clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:], logger.level, logger.propagate = saved
    get_logger.cache_clear()


def test_setup_logging_writes_session_file(package_logger, tmp_path):
    logger = setup_logging(logging.INFO, tmp_path)

    assert logger is package_logger
    [log_file] = list(tmp_path.glob("selek_*.log"))
    file_handler, console_handler = logger.handlers
    assert file_handler.level == logging.DEBUG
    assert console_handler.level == logging.WARNING

    logging.getLogger("selekAgent.access.guard").debug("reached the file")
    file_handler.flush()
    assert "reached the file" in log_file.read_text(encoding="utf-8")


def test_setup_logging_replaces_handlers(package_logger, tmp_path):
    setup_logging(log_dir=tmp_path / "first")
    setup_logging(log_dir=tmp_path / "second")

    assert len(package_logger.handlers) == 2


def test_get_logger_reuses_configured_logger(package_logger, tmp_path):
    setup_logging(log_dir=tmp_path)
    handlers = list(package_logger.handlers)

    assert get_logger() is package_logger
    assert get_logger() is get_logger()
    assert package_logger.handlers == handlers


def test_permission_decision_line(caplog):
    logger = logging.getLogger("selek.test")
    with caplog.at_level("INFO", logger="selek.test"):
        log_permission_decision(logger, "file_write", "orchestrator", "allow_once", "cli")

    assert "Permission file_write for orchestrator: allow_once (cli)" in caplog.text
