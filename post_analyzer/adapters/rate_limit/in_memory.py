"""In-memory leaky-bucket rate limiter.

Each admitted request adds one to the client's counter and schedules a
decrement ``delay_seconds`` later, so the counter tracks the admissions whose
decay has not fired yet. This approximates a leaky bucket rather than a strict
sliding window: a client may sustain roughly ``max_requests / delay_seconds``
requests per second.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- The decrement is a pure timer and fires whatever the request's outcome.
"""

from __future__ import annotations

import logging
import threading

from post_analyzer.adapters.rate_limit.base import (
    AbstractCounterStore,
    AbstractRateLimiter,
    ThrottleDecision,
)
from post_analyzer.utils.scheduler import DelayedTaskScheduler

logger = logging.getLogger(__name__)


class InMemoryLeakyBucketRateLimiter(AbstractRateLimiter):
    """Admission control on top of an expiring counter store.

    The counter store's window bounds how long a counter can live if
    decrements never run (e.g. the scheduler was stopped); ``delay_seconds``
    governs the normal per-request decay.
    """

    def __init__(
        self,
        *,
        store: AbstractCounterStore,
        scheduler: DelayedTaskScheduler,
        max_requests: int = 100,
        delay_seconds: float = 1.0,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter store shared with nothing else.
            scheduler: Scheduler running the deferred decrements.
            max_requests: Counted requests allowed before rejecting.
            delay_seconds: Time after which an admitted request stops counting.

        Raises:
            ValueError: If max_requests or delay_seconds are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

        self._store = store
        self._scheduler = scheduler
        self._max_requests = max_requests
        self._delay_seconds = delay_seconds
        # Serializes check-then-increment so concurrent admits cannot overshoot
        self._lock = threading.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def delay_seconds(self) -> float:
        return self._delay_seconds

    def admit(self, key: str) -> ThrottleDecision:
        """Admit or reject one request for ``key``.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            count = self._store.get(key) or 0
            if count >= self._max_requests:
                return ThrottleDecision(admit=False, limit=self._max_requests, count=count)

            count = self._store.increment(key)
            self._scheduler.call_later(self._delay_seconds, self._store.decrement, key)

        return ThrottleDecision(admit=True, limit=self._max_requests, count=count)
