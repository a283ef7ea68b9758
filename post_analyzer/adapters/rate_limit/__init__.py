"""Rate limiting adapters.

This package provides a small abstraction layer so the service can start with
an in-memory counter store and later migrate to Redis or another shared store
without changing the API layer.
"""

from post_analyzer.adapters.rate_limit.base import (
    AbstractCounterStore,
    AbstractRateLimiter,
    ThrottleDecision,
)
from post_analyzer.adapters.rate_limit.counter_store import InMemoryCounterStore
from post_analyzer.adapters.rate_limit.in_memory import InMemoryLeakyBucketRateLimiter

__all__ = [
    "AbstractCounterStore",
    "AbstractRateLimiter",
    "InMemoryCounterStore",
    "InMemoryLeakyBucketRateLimiter",
    "ThrottleDecision",
]
