"""
In-process TTL cache backing challenges and pairing codes.

Every operation holds one lock, so ``add`` is a real set-if-absent and
can be used as the compare-and-swap step of code allocation.  Expiry is
absolute and evaluated lazily against an injectable monotonic clock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TTLCache:
    """Thread-safe key-value store with per-entry absolute expiry."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        # key = cache key, value = (value, expires_at)
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _live(self, key: str, now: float) -> tuple[Any, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if now >= entry[1]:
            del self._entries[key]
            return None
        return entry

    @staticmethod
    def _check_ttl(ttl: float) -> None:
        if ttl <= 0:
            raise ValueError(f"TTL must be positive, got {ttl}")

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store *value* under *key*, replacing any live entry."""
        self._check_ttl(ttl)
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    def add(self, key: str, value: Any, ttl: float) -> bool:
        """Store *value* only if *key* is not live.  Returns True if stored."""
        self._check_ttl(ttl)
        with self._lock:
            now = self._clock()
            if self._live(key, now) is not None:
                return False
            self._entries[key] = (value, now + ttl)
            return True

    def forget(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def pull(self, key: str) -> Any | None:
        """Atomically read and remove a live entry."""
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None:
                return None
            del self._entries[key]
            return entry[0]

    def pull_if(self, key: str, expected: Any) -> bool:
        """Atomically remove a live entry only if it still holds *expected*."""
        with self._lock:
            entry = self._live(key, self._clock())
            if entry is None or entry[0] != expected:
                return False
            del self._entries[key]
            return True

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._live(key, self._clock())
            return entry[0] if entry is not None else None

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live(key, self._clock()) is not None

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for _, exp in self._entries.values() if now < exp)
