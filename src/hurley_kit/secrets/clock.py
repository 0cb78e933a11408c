"""Injectable UTC time source for cache expiry."""

from datetime import UTC, datetime
from typing import Protocol


class UtcClock(Protocol):
    """Returns the current UTC time."""

    def utc_now(self) -> datetime: ...


class SystemClock:
    """UtcClock backed by the system clock."""

    def utc_now(self) -> datetime:
        return datetime.now(UTC)


__all__ = ["UtcClock", "SystemClock"]
