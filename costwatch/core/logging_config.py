"""
Logging configuration for the detection CLI and long-running callers.

Library modules only call logging.getLogger(__name__); handlers are attached
once, by the entry point, to the package logger.
"""

import logging
import logging.handlers
from typing import List, Optional

from .config import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUPS = 5


def _build_handlers(logger_name: str) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if config.log_to_file:
        config.logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.logs_dir / f"{logger_name}.log",
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
        )

    return handlers


def setup_logging(logger_name: str = "costwatch", level: Optional[str] = None) -> logging.Logger:
    """
    Configure and return the package logger.

    Args:
        logger_name: Name of the logger; child loggers such as
            costwatch.anomaly.engine propagate to it
        level: Log level override (defaults to config.log_level)

    Returns:
        Configured logger instance

    Notes:
        - Calling it again returns the logger unchanged
        - The rotating file lives in config.logs_dir unless log_to_file is off
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    level = (level or config.log_level).upper()
    logger.setLevel(level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _build_handlers(logger_name):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug(f"Logging configured at {level} for {logger_name}")
    return logger
