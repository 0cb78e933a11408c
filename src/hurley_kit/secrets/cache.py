"""
Thread-safe secret cache with expiration tracking.

This module provides in-memory caching of secrets fetched from a remote
store. Entries are cached per key and served until their expiry; after that
the next lookup fetches the secret again and overwrites the entry.

Entries are never evicted proactively. A failed refresh leaves the existing
entry untouched, so a still-valid secret keeps being served.

Thread Safety:
    The entry map is protected by a lock. Remote fetches run outside the
    lock, so a slow store never blocks lookups of other keys.

Example:
    >>> cache = ExpiringSecretCache(getter, params, ttl_seconds=30)
    >>> cache.get("secret/hurley/db/password")   # fetched remotely
    >>> cache.get("secret/hurley/db/password")   # served from memory
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Generic, Optional, Protocol, TypeVar

from hurley_kit.errors.exceptions import ConfigurationError
from hurley_kit.logging.utilities import log_exception
from hurley_kit.secrets.clock import SystemClock, UtcClock

logger = logging.getLogger(__name__)

P = TypeVar("P")
P_contra = TypeVar("P_contra", contravariant=True)


class ObjectGetter(Protocol[P_contra]):
    """Fetches the raw bytes stored under ``key`` in the store described by ``params``."""

    def get_object(self, params: P_contra, key: str) -> bytes: ...


@dataclass
class CacheEntry:
    """
    Secret bytes with an absolute expiry.

    Attributes:
        value: Secret payload as returned by the store
        expires_at: UTC timestamp after which the entry must be refetched
    """

    value: bytes
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        """An entry is servable without refetch iff ``now < expires_at``."""
        return now < self.expires_at


def validate_ttl(ttl_seconds: float) -> None:
    if ttl_seconds <= 0:
        raise ConfigurationError("must specify a ttl greater than 0")


class ExpiringSecretCache(Generic[P]):
    """
    Caches the results of an ObjectGetter for ``ttl_seconds``.

    The same caching logic serves any backend; the store parameters
    (bucket/region, Vault connection settings) are handed to the getter on
    every fetch.
    """

    def __init__(
        self,
        object_getter: ObjectGetter[P],
        params: P,
        ttl_seconds: float,
        clock: Optional[UtcClock] = None,
    ):
        """
        Args:
            object_getter: Performs the remote fetch
            params: Store parameters passed to the getter
            ttl_seconds: How long a fetched secret is served from memory
            clock: Time source (default: system UTC clock)

        Raises:
            ConfigurationError: If ttl_seconds <= 0
        """
        validate_ttl(ttl_seconds)

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._object_getter = object_getter
        self._params = params
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl.total_seconds()

    @property
    def params(self) -> P:
        return self._params

    def get(self, key: str) -> bytes:
        """
        Return the secret for ``key``, from memory while it is unexpired.

        Raises:
            Whatever the object getter raises when a refetch fails.
        """
        with self._lock:
            entry = self._entries.get(key)

        if entry is not None and entry.is_valid(self._clock.utc_now()):
            logger.debug("Returning secret from cache", extra={"resource": key})
            return entry.value

        logger.debug(
            "Secret not cached or expired, refreshing",
            extra={"resource": key, "cache_hit": entry is not None},
        )
        try:
            return self.refresh(key)
        except Exception as e:
            log_exception(logger, e, "Failed to get secret", resource=key)
            raise

    def refresh(self, key: str) -> bytes:
        """
        Fetch ``key`` from the store and cache it for ``ttl_seconds``.

        On failure the existing entry (if any) is left as it was.
        """
        value = self._object_getter.get_object(self._params, key)

        entry = CacheEntry(value=value, expires_at=self._clock.utc_now() + self._ttl)
        with self._lock:
            self._entries[key] = entry

        logger.debug(
            "Storing cache entry",
            extra={"resource": key, "expires_at": entry.expires_at.isoformat()},
        )
        return value

    def get_expiry(self, key: str) -> Optional[datetime]:
        """Expiry of the cached entry for diagnostics, or None if not cached."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.expires_at if entry else None


__all__ = [
    "CacheEntry",
    "ExpiringSecretCache",
    "ObjectGetter",
    "validate_ttl",
]
