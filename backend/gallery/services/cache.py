"""In-memory TTL cache shared by the listing and gallery services."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from gallery.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the monotonic time after which it is stale."""

    value: Any
    expires_at: float


class CacheStore:
    """Key -> value map with per-entry TTL and lazy expiry.

    Expired entries are dropped when they are read; there is no sweeper.
    Every method is synchronous, so a check-then-set inside one coroutine
    cannot be interleaved with another task on the event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize an empty cache.

        Args:
            clock: Source of the current time in seconds. Tests pass a fake.
        """
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            logger.debug("cache_expired", key=key)
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value for ``ttl`` seconds."""
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        logger.debug("cache_set", key=key, ttl_seconds=ttl)

    def clear(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.debug("cache_cleared", entries_cleared=count)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
