"""Small string helpers shared by services."""

import secrets
from collections import deque
from typing import Iterable, List, Sequence, TypeVar

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split ``items`` into consecutive lists of ``size`` elements.

    The last chunk holds the remainder when ``items`` does not divide evenly.

    Raises:
        ValueError: If size < 1
    """
    if size < 1:
        raise ValueError("size must be >= 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def elide_string(s: str, prefix_len: int, suffix_len: int) -> str:
    """
    Keep ``prefix_len`` leading and ``suffix_len`` trailing characters around "...".

    If either length, or their sum, exceeds ``len(s)`` the string is
    returned unmodified.

    >>> elide_string("0123456789abcdef", 4, 4)
    '0123...cdef'
    """
    if len(s) < prefix_len + suffix_len or len(s) < prefix_len or len(s) < suffix_len:
        return s

    prefix = s[:prefix_len] if prefix_len > 0 else ""
    suffix = s[len(s) - suffix_len :] if suffix_len > 0 else ""
    return f"{prefix}...{suffix}"


def random_hex_string(length: int) -> str:
    """
    Random string of ``length`` lowercase hex digits. Safe to call from any thread.

    Raises:
        ValueError: If length < 0
    """
    if length < 0:
        raise ValueError("length must be >= 0")
    return secrets.token_hex((length + 1) // 2)[:length]


class StringQueue:
    """FIFO queue of strings. Not safe for concurrent use."""

    def __init__(self, items: Iterable[str] = ()):
        self._items: deque[str] = deque(items)

    def push(self, s: str) -> None:
        """Add ``s`` to the tail of the queue."""
        self._items.append(s)

    def pop(self) -> str:
        """
        Remove and return the head of the queue.

        Raises:
            IndexError: If the queue is empty
        """
        if not self._items:
            raise IndexError("pop from an empty queue")
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"StringQueue({list(self._items)!r})"


__all__ = ["StringQueue", "chunk", "elide_string", "random_hex_string"]
