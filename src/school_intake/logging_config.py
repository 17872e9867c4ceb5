"""Common logging configuration for School Intake"""

import logging
import sys
from typing import Optional


class InfoFilter(logging.Filter):
    """Filter to only allow INFO and DEBUG logs (exclude WARNING and above)"""

    def filter(self, record):
        return record.levelno < logging.WARNING


def setup_logging(config: Optional[dict] = None):
    """
    Configure logging to send INFO/DEBUG to stdout and WARNING/ERROR to stderr.

    When LOG_FILE is configured, every record is also appended to that file.
    """
    config = config or {}
    log_level = config.get("log_level") or "INFO"
    level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")

    # Handler for INFO and DEBUG -> stdout
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(InfoFilter())
    stdout_handler.setFormatter(formatter)

    # Handler for WARNING and ERROR -> stderr
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)

    log_file = config.get("log_file")
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s")
        )
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module name.

    Args:
        name: Usually __name__ from the calling module

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
