"""Process-wide logging for the monitor.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records end up.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import List

from .config import AppConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_handlers(config: AppConfig) -> List[logging.Handler]:
    """Create the rotating file handler and, if enabled, a console handler."""
    settings = config.logging
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    config.paths.logs_dir.mkdir(parents=True, exist_ok=True)
    handlers: List[logging.Handler] = [
        RotatingFileHandler(
            config.paths.logs_dir / settings.file_name,
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
    ]
    if settings.console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: AppConfig) -> None:
    root_logger = logging.getLogger()
    level = getattr(logging, config.logging.level.upper(), logging.INFO)
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in build_handlers(config):
        root_logger.addHandler(handler)

    quiet_level = max(level, logging.WARNING)
    for name in config.logging.quiet_loggers:
        logging.getLogger(name).setLevel(quiet_level)
