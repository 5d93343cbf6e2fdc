"""Centralized logging configuration for the tubeflow application.

Log lines always go to stderr so that payloads printed on stdout stay
machine-readable. An optional log file is rotated by size.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Iterable, List, Optional

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

# Transport libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

logger = logging.getLogger(__name__)


def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE,
    noisy_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Replaces the root logger's handlers.

    Args:
        log_level: Minimum level for tubeflow's own records.
        log_format: Format string shared by all handlers.
        log_file: Optional path of a size-rotated log file.
        noisy_loggers: Loggers held at WARNING unless `log_level` is DEBUG.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        try:
            handlers.append(RotatingFileHandler(
                log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8',
            ))
        except OSError as e:
            logger.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    transport_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(transport_level)

    logger.debug(f"Logging configured. Level={logging.getLevelName(log_level)}, file={log_file or '-'}")
