"""
Once-only construction of expensive shared clients.

SDK clients such as boto3's S3 client or an authenticated hvac client are
costly to build (credential discovery, session negotiation, login), so one
instance is built on first use and shared by every consumer holding the
LazyClient.

Thread Safety:
    Reads after construction take no lock. The first callers serialise on a
    threading.Lock; exactly one of them runs the factory and the others wait
    for it, then read the stored instance. A factory that raises leaves the
    LazyClient unconstructed so a later call can try again.

Example:
    >>> s3 = LazyClient(lambda region: boto3.client("s3", region_name=region))
    >>> client = s3.get("us-east-1")  # built here
    >>> client is s3.get("eu-west-1")  # first caller's arguments win
    True
"""

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LazyClient(Generic[T]):
    """Holds one lazily constructed instance produced by ``factory``."""

    def __init__(self, factory: Callable[..., T], name: str = ""):
        self._factory = factory
        self.name = name
        self._value: T | None = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def get(self, *args, **kwargs) -> T:
        """
        Return the shared instance, constructing it on first call.

        Arguments are forwarded to the factory only when construction happens.

        Raises:
            Whatever the factory raises; nothing is cached in that case.
        """
        if self._initialized:
            return self._value  # type: ignore[return-value]

        with self._lock:
            if not self._initialized:
                logger.debug(
                    "Constructing shared client: name=%s",
                    self.name,
                    extra={"resource": self.name},
                )
                # Publish the value before the flag so the lock-free path
                # never sees a half-built instance
                self._value = self._factory(*args, **kwargs)
                self._initialized = True

        return self._value  # type: ignore[return-value]


__all__ = ["LazyClient"]
