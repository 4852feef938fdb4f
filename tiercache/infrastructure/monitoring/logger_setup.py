"""Logging configuration for applications embedding tiercache.

The library itself only creates module loggers; call setup_logging() once at
startup to route them (and everything else) to the console and an optional
file. Anything not passed explicitly is read from the 'logging.*' settings:

    logging:
      level: DEBUG
      file: /var/log/app/cache.log
      format: "%(levelname)s %(name)s: %(message)s"
"""

import logging
import sys
from typing import List, Optional, Tuple

from tiercache.infrastructure.config import settings


def _build_handlers(
    formatter: logging.Formatter, log_level: int, log_file: Optional[str]
) -> Tuple[List[logging.Handler], Optional[OSError]]:
    """Returns the console handler, the file handler if it opens, and the open error if not."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    file_error = None
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
        except OSError as e:
            file_error = e
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
    return handlers, file_error


def setup_logging(
    log_level: Optional[int] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Configures the root logger, replacing any handlers already attached.

    Args:
        log_level: The minimum logging level. Defaults to the 'logging.level' setting.
        log_format: The format string for log records. Defaults to the
            'logging.format' setting.
        log_file: Optional path to a file for logging output. Defaults to the
            'logging.file' setting.
    """
    if log_level is None:
        log_level = settings.get_log_level()
    if log_format is None:
        log_format = settings.get_log_format()
    if log_file is None:
        log_file = settings.get_log_file()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers, file_error = _build_handlers(logging.Formatter(log_format), log_level, log_file)
    for handler in handlers:
        root_logger.addHandler(handler)

    if file_error is not None:
        logging.error(f"Failed to set up file logging to {log_file}: {file_error}")

    destinations = ", ".join(type(h).__name__ for h in handlers)
    logging.info(f"Logging configured. Level={logging.getLevelName(log_level)}, handlers: {destinations}")
