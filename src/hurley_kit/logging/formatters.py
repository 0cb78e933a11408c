"""Log formatters for JSON, logfmt and console output."""

import json
import logging
import re
import sys
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from hurley_kit.logging.context import get_log_context

CONTEXT_FIELDS = ["service", "component", "trace_id", "request_id"]


def json_serializer(obj: Any) -> Any:
    """Fallback serializer that keeps datetimes and enums readable."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bytes):
        return f"<{len(obj)} bytes>"
    return str(obj)


class _StructuredFormatter(logging.Formatter):
    """Shared field extraction for the machine-readable formatters."""

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # HTTP
        "http_status",
        "http_method",
        "http_url",
        "status_code",
        "duration_ms",
        # Errors
        "error_category",
        "error_message",
        "error_type",
        # Resilience
        "circuit_name",
        "circuit_state",
        "retry_after",
        "callback_error",
        # Secrets
        "resource",
        "bucket",
        "expires_at",
        "cache_hit",
    ]

    NUMERIC_FIELDS = {
        "http_status": int,
        "status_code": int,
        "duration_ms": float,
        "retry_after": float,
    }

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["http_url", "url"]

    # Pattern to match sensitive query parameters
    SENSITIVE_PARAMS_PATTERN = re.compile(
        r"([?&])(sig|token|key|secret|password|auth|jwt)=[^&]*",
        re.IGNORECASE,
    )

    def _sanitize_url(self, url: str) -> str:
        return self.SENSITIVE_PARAMS_PATTERN.sub(r"\1\2=[REDACTED]", url)

    def _ensure_type(self, field: str, value: Any) -> Any:
        if field not in self.NUMERIC_FIELDS or value is None:
            return value
        try:
            return self.NUMERIC_FIELDS[field](value)
        except (ValueError, TypeError):
            return None

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def _collect_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields: dict[str, Any] = {}

        log_context = get_log_context()
        for field in CONTEXT_FIELDS:
            if log_context[field]:
                fields[field] = log_context[field]

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            fields["caller"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is None:
                continue
            value = self._ensure_type(field, value)
            if field in self.URL_FIELDS and isinstance(value, str):
                value = self._sanitize_url(value)
            fields[field] = value

        return fields


class JSONFormatter(_StructuredFormatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs to remove sensitive tokens before logging.
    """

    def _inject_exception(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        if not record.exc_info:
            return

        exc_type, exc_value, _ = record.exc_info
        log_entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": self.formatException(record.exc_info),
        }

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": self._timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(self._collect_fields(record))
        self._inject_exception(log_entry, record)

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class LogfmtFormatter(_StructuredFormatter):
    """
    logfmt formatter: ``ts=... level=INFO logger=... msg="..." key=value``.

    Values containing spaces, quotes, ``=`` or control characters are
    double-quoted with escapes; empty values are written as ``""``.
    """

    _NEEDS_QUOTING = re.compile(r'[\s"=\\]|[\x00-\x1f]')

    @classmethod
    def _encode_value(cls, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if not isinstance(value, str):
            value = str(json_serializer(value))
        if value == "":
            return '""'
        if cls._NEEDS_QUOTING.search(value):
            return json.dumps(value, ensure_ascii=False)
        return value

    def format(self, record: logging.LogRecord) -> str:
        pairs: list[tuple[str, Any]] = [
            ("ts", self._timestamp()),
            ("level", record.levelname),
            ("logger", record.name),
            ("msg", record.getMessage()),
        ]
        pairs.extend(self._collect_fields(record).items())

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            pairs.append(("exc_type", exc_type.__name__ if exc_type else ""))
            pairs.append(("exc_message", str(exc_value) if exc_value else ""))
            pairs.append(("stacktrace", self.formatException(record.exc_info)))

        return " ".join(f"{key}={self._encode_value(value)}" for key, value in pairs)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    # ANSI color codes
    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        if not self._use_colors:
            return level_name

        color = self.COLORS.get(record.levelno, "")
        if not color:
            return level_name

        return f"{color}{level_name}{self.RESET}"

    @staticmethod
    def _build_tags(record: logging.LogRecord, log_context: dict[str, Any]) -> list[str]:
        tags = []
        if log_context["service"]:
            tags.append(f"[{log_context['service']}]")

        trace_id = getattr(record, "trace_id", None) or log_context.get("trace_id")
        if trace_id:
            tags.append(f"[{trace_id[:8]}]")

        circuit_state = getattr(record, "circuit_state", None)
        if circuit_state:
            tags.append(f"[circuit:{circuit_state}]")
        return tags

    def format(self, record: logging.LogRecord) -> str:
        log_context = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            self._format_level_name(record),
            record.name,
        ]
        prefix = " - ".join(parts)
        tags = self._build_tags(record, log_context)

        if tags:
            line = f"{prefix} - {' '.join(tags)} {record.getMessage()}"
        else:
            line = f"{prefix} - {record.getMessage()}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line
