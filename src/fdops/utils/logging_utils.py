"""Logging utilities for operator construction and application."""

import logging
import sys
import functools
from pathlib import Path
from typing import Optional, Union
import time
from contextlib import contextmanager


class ColoredFormatter(logging.Formatter):
    """Colored console formatter for better readability."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        """Add color to log messages."""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (self.COLORS[levelname] +
                                levelname +
                                self.COLORS['RESET'])
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    level: Union[str, int] = logging.INFO,
    format_string: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    colored_console: bool = True,
    logger_name: str = "fdops"
) -> logging.Logger:
    """
    Setup logging for the operator library.

    Args:
        level: Logging level
        format_string: Custom format string
        log_file: Path to log file (optional)
        console_output: Enable console output
        colored_console: Use colored console output
        logger_name: Logger to configure (empty string for the root logger)

    Returns:
        The configured logger
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    target_logger = logging.getLogger(logger_name)
    target_logger.setLevel(level)

    # Clear existing handlers
    for handler in list(target_logger.handlers):
        target_logger.removeHandler(handler)
        handler.close()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if colored_console:
            console_formatter = ColoredFormatter(format_string)
        else:
            console_formatter = logging.Formatter(format_string)

        console_handler.setFormatter(console_formatter)
        target_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        target_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: level={logging.getLevelName(level)}, "
                f"console={console_output}, file={log_file is not None}")
    return target_logger


def get_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)
        level: Optional override level for this logger

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    return logger


class LoggingContext:
    """Context manager for temporary logging configuration."""

    def __init__(self, level: Union[str, int], logger_name: Optional[str] = None):
        """
        Initialize logging context.

        Args:
            level: Temporary logging level
            logger_name: Specific logger to modify (None for root)
        """
        self.new_level = level
        self.logger_name = logger_name
        self.original_level = None
        self.logger = None

    def __enter__(self):
        """Enter context - set new logging level."""
        self.logger = logging.getLogger(self.logger_name)
        self.original_level = self.logger.level
        self.logger.setLevel(self.new_level)
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context - restore original logging level."""
        if self.logger and self.original_level is not None:
            self.logger.setLevel(self.original_level)


@contextmanager
def silence_logger(logger_name: str):
    """Context manager to temporarily silence a specific logger."""
    logger = logging.getLogger(logger_name)
    original_level = logger.level
    logger.setLevel(logging.CRITICAL + 1)
    try:
        yield logger
    finally:
        logger.setLevel(original_level)


@contextmanager
def debug_logging(logger_name: Optional[str] = "fdops"):
    """Context manager to temporarily enable debug logging."""
    with LoggingContext(logging.DEBUG, logger_name) as logger:
        yield logger


def log_function_call(func):
    """Decorator to log function calls with timing."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()

        logger.debug(f"Entering {func.__qualname__}")

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed_time = time.perf_counter() - start_time
            logger.error(f"Exception in {func.__qualname__} after {elapsed_time:.3f}s: {e}")
            raise

        elapsed_time = time.perf_counter() - start_time
        logger.debug(f"Exiting {func.__qualname__} (elapsed: {elapsed_time:.3f}s)")
        return result

    return wrapper
