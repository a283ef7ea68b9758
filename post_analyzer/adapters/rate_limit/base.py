"""Rate limiting interfaces.

The API should depend on these abstractions (not the concrete implementations)
so the counter storage can later move to a shared store (e.g. Redis) without
changing the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ThrottleDecision:
    """Outcome of a single admission check.

    Attributes:
        admit: Whether the request may proceed.
        limit: Configured maximum of concurrently counted requests.
        count: Client's counter after the decision (unchanged when rejected).
    """

    admit: bool
    limit: int
    count: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class AbstractCounterStore(ABC):
    """Key -> integer counter map whose entries expire."""

    @abstractmethod
    def increment(self, key: str) -> int:
        """Add one to ``key`` (creating it at 1) and refresh its TTL.

        Returns:
            The new count.
        """
        raise NotImplementedError

    @abstractmethod
    def decrement(self, key: str) -> None:
        """Subtract one from ``key`` without extending its TTL.

        Absent keys are ignored; a key at 1 is deleted rather than kept at 0.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> int | None:
        """Return the live count for ``key`` or None when absent/expired."""
        raise NotImplementedError


class AbstractRateLimiter(ABC):
    """Interface for per-client admission control."""

    @abstractmethod
    def admit(self, key: str) -> ThrottleDecision:
        """Decide whether the client identified by ``key`` may proceed.

        Args:
            key: Unique client identifier (e.g. ``rate_limit:<ip>``).

        Returns:
            ThrottleDecision describing the outcome.
        """
        raise NotImplementedError
