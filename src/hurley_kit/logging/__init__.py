"""
Structured logging module.

Provides JSON, logfmt and console logging with context propagation.
"""

from hurley_kit.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from hurley_kit.logging.formatters import ConsoleFormatter, JSONFormatter, LogfmtFormatter
from hurley_kit.logging.setup import NOISY_LOGGERS, get_logger, setup_logging
from hurley_kit.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "NOISY_LOGGERS",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    "LogfmtFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    # Utilities
    "log_with_context",
    "log_exception",
]
