"""Bounded FIFO buffer of precomputed bundles.

Filled by the preloader, drained by request handlers. Oldest content is
served first, and pushing at capacity evicts the oldest entry, so nothing
in the buffer is older than ``max_size`` generations.

All methods are synchronous and hold the lock only for the in-memory
transition, so they are safe to call from the event loop and from worker
threads alike.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pitchparty.models.bundle import Bundle

log = structlog.get_logger()


class PrefetchCache:
    """Capacity-bounded FIFO of bundles with a one-way ``loaded`` flag."""

    def __init__(self, max_size: int) -> None:
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self._max_size = max_size
        self._lock = threading.Lock()
        self._items: deque[Bundle] = deque()
        self._loaded = False

    @property
    def max_size(self) -> int:
        return self._max_size

    def push(self, bundle: Bundle) -> None:
        """Append ``bundle``, evicting the oldest entry first when full."""
        with self._lock:
            evicted = False
            if len(self._items) >= self._max_size:
                self._items.popleft()
                evicted = True
            self._items.append(bundle)
            size = len(self._items)
        if evicted:
            log.debug("prefetch_cache_evicted", size=size, max_size=self._max_size)

    def pop(self) -> Bundle | None:
        """Remove and return the oldest bundle, or ``None`` when empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def mark_loaded(self) -> None:
        with self._lock:
            self._loaded = True

    def is_loaded(self) -> bool:
        with self._lock:
            return self._loaded
