# This module contains a custom formatter for logging messages with different log levels.
import logging
from typing import Optional

LOGGER_NAME = "bsky"
FILE_FORMAT = '[%(levelname)s] %(asctime)s - %(name)s - %(message)s'


class CustomFormatter(logging.Formatter):
    """
    A custom formatter for logging messages with different log levels.

    Attributes:
        grey (str): ANSI escape sequence for grey color.
        yellow (str): ANSI escape sequence for yellow color.
        red (str): ANSI escape sequence for red color.
        bold_red (str): ANSI escape sequence for bold red color.
        reset (str): ANSI escape sequence to reset color.
        format (str): The log message format.
        FORMATS (dict): A dictionary mapping log levels to their respective log message formats.

    Usage:
        formatter = CustomFormatter()
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format = '[%(levelname)s] %(asctime)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset
    }

    def format(self, record):
        """
        Formats the log record based on its log level.

        Args:
            record (logging.LogRecord): The log record to be formatted.

        Returns:
            str: The formatted log message.
        """
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def _root_logger() -> logging.Logger:
    """Return the application's parent logger, attaching the console handler once."""
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        log.setLevel(logging.INFO)

        # Console output goes to stderr; stdout is reserved for the exported JSON
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(CustomFormatter())
        log.addHandler(ch)
    return log


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger that reports through the application's console handler.

    Args:
        name: Usually the calling module's __name__.

    Returns:
        logging.Logger: A child of the application logger.
    """
    root = _root_logger()
    if not name:
        return root
    return root.getChild(name)


def setup_file_logging(log_file: Optional[str], level: int = logging.INFO) -> logging.Logger:
    """
    Set the application log level and additionally log to a file.

    Args:
        log_file: Path of the log file, or None/empty for console only.
        level: Logging level for the application logger.

    Returns:
        logging.Logger: The configured application logger.
    """
    root = _root_logger()
    root.setLevel(level)

    if log_file:
        already_attached = any(
            isinstance(h, logging.FileHandler) and h.baseFilename.endswith(log_file)
            for h in root.handlers
        )
        if not already_attached:
            fh = logging.FileHandler(log_file, encoding='utf-8')
            fh.setLevel(level)
            fh.setFormatter(logging.Formatter(FILE_FORMAT))
            root.addHandler(fh)

    return root
