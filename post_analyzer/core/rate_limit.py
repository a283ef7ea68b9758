"""Rate limiting dependency for FastAPI routes.

This module wires the request throttle into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the counter store can be replaced (e.g., Redis) behind an
  abstract interface.
- Runs before any other work: a rejected request never reaches the queue or
  the store.

Rate limiting strategy:
- Leaky-bucket approximation keyed by client IP. Each admitted request counts
  for ``DELAY_MS`` milliseconds, and at most ``MAX_REQUESTS`` may count at once.
"""

from __future__ import annotations

import hashlib
import logging
import math

from fastapi import Request

from post_analyzer.adapters.rate_limit.base import AbstractRateLimiter
from post_analyzer.core.errors import AdmissionRejectedError

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the process-wide limiter held by the service container."""
    return request.app.state.container.rate_limiter


def _build_rate_limit_key(request: Request) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Namespaced limiter key.
    """

    client_host = request.client.host if request.client else "unknown"
    return f"rate_limit:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the per-client throttle.

    When enabled, admits the request (counting it for ``DELAY_MS``) or raises
    when the client already has ``MAX_REQUESTS`` requests counted.

    Args:
        request: FastAPI request.

    Raises:
        AdmissionRejectedError: Rendered as 429 Too Many Requests.
    """

    container = request.app.state.container
    throttle_settings = container.settings.throttle
    if not throttle_settings.enabled:
        return

    limiter = get_rate_limiter(request)
    key = _build_rate_limit_key(request)

    decision = limiter.admit(key)
    if decision.admit:
        logger.debug(
            "throttle.admitted",
            extra={
                "key_hash": _hash_limiter_key(key),
                "limit": decision.limit,
                "count": decision.count,
            },
        )
        return

    retry_after = max(1, math.ceil(throttle_settings.delay_seconds))
    logger.warning(
        "throttle.rejected",
        extra={
            "key_hash": _hash_limiter_key(key),
            "limit": decision.limit,
            "count": decision.count,
            "delay_ms": throttle_settings.delay_ms,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] | None = None
    if throttle_settings.include_headers:
        headers = {
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }

    raise AdmissionRejectedError(
        code="rate_limited",
        message="Too many requests",
        details={"limit": decision.limit, "count": decision.count, "retry_after": retry_after},
        headers=headers,
    )
