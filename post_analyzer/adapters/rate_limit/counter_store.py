"""In-memory expiring counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: every read-modify-write happens under one lock, so the
  throttle's deferred decrements never lose updates against new admissions.
- Expiry is lazy: entries are checked when touched, there is no sweep thread.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from post_analyzer.adapters.rate_limit.base import AbstractCounterStore


@dataclass
class _CounterEntry:
    count: int
    expires_at: float


class InMemoryCounterStore(AbstractCounterStore):
    """Counter map where each key lives for ``window_seconds`` after its last increment.

    ``increment`` refreshes the TTL; ``decrement`` keeps the remaining TTL.
    A counter never drops to zero: the entry is deleted instead.
    """

    def __init__(
        self,
        *,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            window_seconds: Lifetime applied to an entry on each increment.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If window_seconds is not positive.
        """
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _CounterEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _live_entry_locked(self, key: str, now: float) -> _CounterEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= now:
            del self._entries[key]
            return None
        return entry

    def increment(self, key: str) -> int:
        with self._lock:
            now = self._clock()
            entry = self._live_entry_locked(key, now)
            if entry is None:
                entry = _CounterEntry(count=0, expires_at=now)
                self._entries[key] = entry
            entry.count += 1
            entry.expires_at = now + self._window_seconds
            return entry.count

    def decrement(self, key: str) -> None:
        with self._lock:
            entry = self._live_entry_locked(key, self._clock())
            if entry is None:
                return
            if entry.count <= 1:
                del self._entries[key]
                return
            entry.count -= 1

    def get(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key, self._clock())
            return entry.count if entry is not None else None

    def delete(self, key: str) -> None:
        """Remove ``key`` regardless of its count."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
