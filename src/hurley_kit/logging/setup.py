"""Logging setup and configuration."""

import logging
import sys

from hurley_kit.errors.exceptions import ConfigurationError
from hurley_kit.logging.context import set_log_context
from hurley_kit.logging.formatters import ConsoleFormatter, JSONFormatter, LogfmtFormatter

DEFAULT_LEVEL = logging.INFO

FORMATTERS = {
    "console": ConsoleFormatter,
    "json": JSONFormatter,
    "logfmt": LogfmtFormatter,
}

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3",
    "hvac",
]


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    name: str = "hurley_kit",
    level: int | str = DEFAULT_LEVEL,
    log_format: str = "console",
    suppress_noisy: bool = True,
    service: str | None = None,
) -> logging.Logger:
    """
    Configure the root logger with a single stdout handler.

    Services run in containers and ship stdout, so there are no file
    handlers. Calling this again replaces the previous handler.

    Args:
        name: Logger name to return
        level: Minimum level, as a logging constant or name ("DEBUG", ...)
        log_format: "console" (human-readable), "json" or "logfmt"
        suppress_noisy: Quiet down AWS SDK, urllib3 and hvac loggers
        service: Service name injected into every record's context

    Returns:
        Configured logger instance

    Raises:
        ConfigurationError: If the level or format is unknown
    """
    formatter_cls = FORMATTERS.get(log_format)
    if formatter_cls is None:
        raise ConfigurationError(
            f"Unknown log format: {log_format} (expected one of {sorted(FORMATTERS)})"
        )
    resolved_level = _resolve_level(level)

    if service:
        set_log_context(service=service)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved_level)
    handler.setFormatter(formatter_cls())

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug("Logging initialized: format=%s", log_format)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.
    """
    return logging.getLogger(name)
