"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep shapes consistent across the codebase
    without forcing every error to carry every field.
    """

    code: str
    message: str
    hint: str
    post_id: str
    queue: str
    limit: int
    count: int
    retry_after: float
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised when a requested post does not exist."""


@dataclass
class AdmissionRejectedError(AppError):
    """Raised when a client exceeds its request budget.

    Attributes:
        headers: Optional throttling headers (Retry-After, X-RateLimit-*).
    """

    headers: dict[str, str] | None = None


class BrokerConnectionError(AppError):
    """Raised when the message broker is unreachable or not yet connected."""


class PublishAppError(AppError):
    """Raised when a submission cannot be published to the queue."""


class StoreAppError(AppError):
    """Raised when the persistent store fails."""


class DuplicatePostError(StoreAppError):
    """Raised when inserting a post whose id already exists."""
