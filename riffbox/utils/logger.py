"""
Logging utilities for Riffbox.

Application modules log through :func:`get_logger`. Everything yt-dlp prints
is relayed through a dedicated logger (:data:`TOOL_LOGGER_NAME`) so that its
chatter can be kept off the console while still reaching the log file.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union, TextIO

TOOL_LOGGER_NAME = "riffbox.ytdlp"

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s"


class ToolOutputFilter(logging.Filter):
    """Drops yt-dlp output records below ``min_level``; other records pass."""

    def __init__(self, min_level: int):
        super().__init__()
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == TOOL_LOGGER_NAME or record.name.startswith(TOOL_LOGGER_NAME + "."):
            return record.levelno >= self.min_level
        return True


def setup_logger(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    file_level: Optional[int] = None,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
    tool_level: Optional[int] = None,
) -> None:
    """
    Set up logging for the application.

    Args:
        level: The logging level for the console handler
        log_file: Optional path to a log file
        file_level: Optional logging level for the file handler (defaults to DEBUG)
        format_string: Optional custom format string for log messages
        stream: Optional stream to use for console logging (defaults to sys.stderr)
        tool_level: Minimum level at which yt-dlp output reaches the console;
            None treats it like any other record. The log file is not affected.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    # stderr keeps log lines apart from the rich tables printed on stdout
    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    if tool_level is not None:
        console_handler.addFilter(ToolOutputFilter(tool_level))
    root_logger.addHandler(console_handler)

    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(file_level or logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # asyncio logs every subprocess transport at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized at level {logging.getLevelName(level)}")
    if log_file:
        logger.debug(f"Log file: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: The name of the logger

    Returns:
        A logger instance
    """
    return logging.getLogger(name)


def get_tool_logger() -> logging.Logger:
    """Logger that carries the lines yt-dlp prints on stdout and stderr."""
    return logging.getLogger(TOOL_LOGGER_NAME)
