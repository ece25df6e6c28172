"""Utility functions for the operator library."""

from .logging_utils import setup_logging, get_logger, LoggingContext, debug_logging, silence_logger

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingContext",
    "debug_logging",
    "silence_logger",
]
