"""Tests for logging configuration."""

import dataclasses
import logging
from logging.handlers import RotatingFileHandler

import pytest

from netmon.config import load_config
from netmon.logging_setup import build_handlers, configure_logging


@pytest.fixture
def config(tmp_path):
    (tmp_path / "config.yaml").write_text(
        "logging:\n  level: DEBUG\n  file_name: test.log\n  max_bytes: 1024\n  backup_count: 2\n",
        encoding="utf-8",
    )
    return load_config(str(tmp_path / "config.yaml"))


@pytest.fixture
def restore_logging():
    """Put the root logger back the way pytest set it up."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    quiet = {name: logging.getLogger(name).level for name in ("websockets", "apscheduler.executors.default")}
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, value in quiet.items():
        logging.getLogger(name).setLevel(value)


def test_build_handlers_uses_configured_rotation(config):
    """The file handler honours file name, size and backup count."""
    handlers = build_handlers(config)
    try:
        file_handler = handlers[0]
        assert isinstance(file_handler, RotatingFileHandler)
        assert file_handler.baseFilename == str(config.paths.logs_dir / "test.log")
        assert file_handler.maxBytes == 1024
        assert file_handler.backupCount == 2
        assert len(handlers) == 2
    finally:
        for handler in handlers:
            handler.close()


def test_console_handler_can_be_disabled(config):
    """With console off only the log file is written."""
    quiet = dataclasses.replace(config, logging=dataclasses.replace(config.logging, console=False))
    handlers = build_handlers(quiet)
    try:
        assert [type(handler) for handler in handlers] == [RotatingFileHandler]
    finally:
        for handler in handlers:
            handler.close()


def test_configure_logging_writes_file_and_quiets_libraries(config, restore_logging):
    """Root records reach the file; chatty library loggers are raised to WARNING."""
    configure_logging(config)

    logging.getLogger("netmon.test").info("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("websockets").level == logging.WARNING
    assert "hello from the test" in (config.paths.logs_dir / "test.log").read_text(encoding="utf-8")
