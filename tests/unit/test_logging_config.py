"""
Unit tests for logging setup.
"""

import logging
import logging.handlers

import pytest

from costwatch.core.config import config
from costwatch.core.logging_config import setup_logging


@pytest.fixture
def fresh_logger():
    name = "costwatch-test-logging"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_console_only(monkeypatch, fresh_logger):
    monkeypatch.setattr(config, "log_to_file", False)

    logger = setup_logging(fresh_logger)

    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]


def test_rotating_file(monkeypatch, tmp_path, fresh_logger):
    monkeypatch.setattr(config, "log_to_file", True)
    monkeypatch.setattr(config, "logs_dir", tmp_path / "logs")

    logger = setup_logging(fresh_logger)
    logger.warning("hello")

    file_handlers = [
        h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
    ]
    assert len(file_handlers) == 1
    assert (tmp_path / "logs" / f"{fresh_logger}.log").exists()


def test_idempotent(monkeypatch, fresh_logger):
    monkeypatch.setattr(config, "log_to_file", False)

    first = setup_logging(fresh_logger)
    second = setup_logging(fresh_logger)

    assert first is second
    assert len(second.handlers) == 1


def test_level_override(monkeypatch, fresh_logger):
    monkeypatch.setattr(config, "log_to_file", False)

    logger = setup_logging(fresh_logger, level="debug")

    assert logger.level == logging.DEBUG
    assert logger.handlers[0].level == logging.DEBUG
