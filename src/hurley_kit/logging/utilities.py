"""Helpers for logging with structured ``extra`` fields."""

import logging
from typing import Any

# Names every LogRecord already carries; logging rejects them in ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

MAX_ERROR_MESSAGE_LENGTH = 200


def _safe_extra(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if key not in _RECORD_ATTRIBUTES}


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    *,
    exc_info: Any = None,
    **fields: Any,
) -> None:
    """
    Log ``msg`` with ``fields`` attached as record attributes.

    Fields that collide with LogRecord attributes are dropped rather than
    raising.

    Example:
        log_with_context(
            logger, logging.INFO, "Fetched secret",
            resource="secret/data/profile-service/db",
            cache_hit=False,
        )
    """
    logger.log(level, msg, exc_info=exc_info, extra=_safe_extra(fields))


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = False,
    **fields: Any,
) -> None:
    """
    Log a failure with its type, category and a truncated message.

    ``error_category`` is taken from KitError subclasses unless passed in.
    Messages longer than MAX_ERROR_MESSAGE_LENGTH are cut and end in "...".
    """
    fields.setdefault("error_type", type(exc).__name__)

    category = getattr(exc, "category", None)
    if category is not None:
        fields.setdefault("error_category", getattr(category, "value", str(category)))

    error_message = str(exc)
    if len(error_message) > MAX_ERROR_MESSAGE_LENGTH:
        error_message = error_message[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    fields["error_message"] = error_message

    log_with_context(
        logger,
        level,
        msg,
        exc_info=exc if include_traceback else None,
        **fields,
    )
