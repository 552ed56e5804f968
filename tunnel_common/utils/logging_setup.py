"""
Logging configuration for the tunnel client.
Sets up logging with console and file handlers, optional colors, and payload hexdumps.
"""
import os
import logging
import logging.handlers
import sys
from typing import Optional, TextIO

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",     # cyan
    logging.INFO: "\033[32m",      # green
    logging.WARNING: "\033[33m",   # yellow
    logging.ERROR: "\033[31m",     # red
    logging.CRITICAL: "\033[1;31m",
}
RESET_COLOR = "\033[0m"

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ColorFormatter(logging.Formatter):
    """
    Formatter that colors the level name with ANSI escape codes
    """
    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{RESET_COLOR}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def use_color(mode: str, stream: TextIO) -> bool:
    """
    Decide whether to emit colors

    Args:
        mode: "always", "never" or "auto" (colors only on a terminal)
        stream: Stream the console handler writes to
    """
    if mode == "always":
        return True
    if mode == "never":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def setup_logging(
    app_name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_to_console: bool = True,
    log_format: Optional[str] = None,
    color: str = "auto",
    stream: Optional[TextIO] = None,
    max_size: int = 10485760,  # 10 MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure logging for the application

    Args:
        app_name: Name of the application (prefix for logger)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None for no file logging)
        log_to_console: Whether to log to console
        log_format: Custom log format (None for default)
        color: Console colors, "auto", "always" or "never"
        stream: Console stream (None for stdout)
        max_size: Maximum log file size in bytes
        backup_count: Number of backup log files

    Returns:
        Configured logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(app_name)
    logger.setLevel(numeric_level)

    # Clear existing handlers to avoid duplicate logging
    logger.handlers = []

    log_format = log_format or DEFAULT_FORMAT

    if log_to_console:
        stream = stream or sys.stdout
        console_handler = logging.StreamHandler(stream)
        if use_color(color, stream):
            console_handler.setFormatter(ColorFormatter(log_format))
        else:
            console_handler.setFormatter(logging.Formatter(log_format))
        logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size,
            backupCount=backup_count
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")

    logger.debug(f"Logging initialized for {app_name} at level {log_level}")

    return logger


def hexdump(data: bytes, width: int = 16) -> str:
    """
    Format bytes as offset, hex and printable columns

    Args:
        data: Bytes to format
        width: Bytes per line

    Returns:
        Multi-line dump, empty string for empty input
    """
    lines = []
    for offset in range(0, len(data), width):
        chunk = data[offset:offset + width]
        hex_part = ' '.join(f"{b:02x}" for b in chunk)
        text_part = ''.join(chr(b) if 32 <= b < 127 else '.' for b in chunk)
        lines.append(f"{offset:08x}  {hex_part:<{width * 3 - 1}}  {text_part}")
    return '\n'.join(lines)
