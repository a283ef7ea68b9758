"""Queue consumer that analyzes submissions and persists the results.

Per message: Received -> Processing -> Acked | Rejected.

A message is acknowledged only after its row has been inserted. Every
processing failure (malformed payload, duplicate id, store error) rejects the
message with requeue so it is redelivered. Once a message has failed
``max_delivery_attempts`` times it is rejected without requeue, which the
broker routes to the dead-letter queue declared next to the work queue.
"""

from __future__ import annotations

import hashlib
import logging

from post_analyzer.adapters.queue.base import AbstractQueueClient, QueueMessage
from post_analyzer.adapters.rate_limit.counter_store import InMemoryCounterStore
from post_analyzer.adapters.store.base import AbstractPostRepository
from post_analyzer.core.errors import AppError
from post_analyzer.services.analysis_service import analyze_submission, decode_submission

logger = logging.getLogger(__name__)

# How long a failing message's attempt count is remembered between deliveries
ATTEMPTS_WINDOW_SECONDS = 3600


def _message_fingerprint(message: QueueMessage) -> str:
    # Requeued messages keep their body, not necessarily their id
    return hashlib.sha256(message.body).hexdigest()


class AnalysisWorker:
    """Consumes ``queue_name`` and writes analyses through ``repository``.

    Attributes:
        queue_name: Queue the worker consumes from.
        max_delivery_attempts: Failed deliveries before dead-lettering (0 = never).
    """

    def __init__(
        self,
        *,
        queue_client: AbstractQueueClient,
        repository: AbstractPostRepository,
        queue_name: str,
        max_delivery_attempts: int = 5,
        attempts_store: InMemoryCounterStore | None = None,
    ) -> None:
        if max_delivery_attempts < 0:
            raise ValueError("max_delivery_attempts must be >= 0")

        self.queue_client = queue_client
        self.repository = repository
        self.queue_name = queue_name
        self.max_delivery_attempts = max_delivery_attempts
        self._attempts = attempts_store or InMemoryCounterStore(
            window_seconds=ATTEMPTS_WINDOW_SECONDS
        )

    async def start(self) -> None:
        """Register the worker as a consumer of its queue."""
        await self.queue_client.consume(self.queue_name, self.handle)
        logger.info(
            "worker.started",
            extra={"queue": self.queue_name, "max_delivery_attempts": self.max_delivery_attempts},
        )

    async def process(self, message: QueueMessage) -> str:
        """Decode, analyze and persist one message. Returns the post id.

        Raises:
            AppError: On malformed payloads or store failures.
        """
        submission = decode_submission(message.body)
        analysis = analyze_submission(submission)
        await self.repository.insert(analysis)

        logger.info(
            "worker.post_analyzed",
            extra={
                "post_id": analysis.id,
                "word_count": analysis.word_count,
                "average_word_length": analysis.average_word_length,
            },
        )
        return analysis.id

    async def handle(self, message: QueueMessage) -> None:
        """Process ``message`` then ack it, or reject it on failure.

        Processing failures are logged, never raised. Errors raised by the
        broker while acking/rejecting propagate.
        """
        fingerprint = _message_fingerprint(message)

        try:
            post_id = await self.process(message)
        except Exception as exc:
            await self._reject(message, fingerprint, exc)
            return

        await self.queue_client.ack(message)
        self._attempts.delete(fingerprint)
        logger.info(
            "worker.message_acked",
            extra={"post_id": post_id, "message_id": message.message_id},
        )

    async def _reject(self, message: QueueMessage, fingerprint: str, exc: Exception) -> None:
        attempts = self._attempts.increment(fingerprint)
        exhausted = 0 < self.max_delivery_attempts <= attempts
        error_code = exc.code if isinstance(exc, AppError) else "processing_failed"

        logger.error(
            "worker.message_failed",
            extra={
                "message_id": message.message_id,
                "redelivered": message.redelivered,
                "attempt": attempts,
                "error_code": error_code,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
                "requeue": not exhausted,
            },
        )

        if exhausted:
            await self.queue_client.reject(message, requeue=False)
            self._attempts.delete(fingerprint)
            logger.warning(
                "worker.message_dead_lettered",
                extra={"message_id": message.message_id, "attempts": attempts},
            )
            return

        await self.queue_client.reject(message, requeue=True)
