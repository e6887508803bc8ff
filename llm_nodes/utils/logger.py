"""
Logging utilities.

WHAT: Centralized logging configuration
WHY: Consistent log format and easy logger access
HOW: Python logging with console and optional file handlers
"""

import logging
import sys
from pathlib import Path

from ..core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """
    Configure the llm_nodes logger.

    The library never calls this on import; applications opt in.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
        log_file: Optional path for a DEBUG-level file handler (defaults to settings.LOG_FILE)

    Returns:
        The configured package logger
    """
    level = level or settings.LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    package_logger = logging.getLogger("llm_nodes")
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove handlers installed by a previous call
    for handler in list(package_logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            package_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    package_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(message)s',
            datefmt=DATE_FORMAT
        ))
        package_logger.addHandler(file_handler)

    package_logger.info(f"Logging initialized (level={level}, file={log_file})")
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
