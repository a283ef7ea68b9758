"""Message queue client interface.

Producers (the API) and consumers (the analysis worker) depend on this
abstraction so the broker can be replaced, and so tests can run against an
in-memory double.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable


@dataclass
class QueueMessage:
    """A delivered message awaiting acknowledgement.

    Attributes:
        body: Raw message payload.
        message_id: Broker/producer message id, if any.
        redelivered: True when the broker has delivered this message before.
        raw: Broker-specific message object used to ack/reject.
    """

    body: bytes
    message_id: str | None = None
    redelivered: bool = False
    raw: Any = field(default=None, repr=False)


MessageHandler = Callable[[QueueMessage], Awaitable[None]]


class AbstractQueueClient(ABC):
    """Interface for connect/declare/publish/consume/ack/reject against a broker."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection and channel.

        Raises:
            BrokerConnectionError: If the broker is unreachable.
        """
        ...

    @abstractmethod
    async def declare_queue(self, name: str, *, durable: bool = True) -> None:
        """Ensure ``name`` exists. Idempotent."""
        ...

    @abstractmethod
    async def publish(self, queue_name: str, payload: bytes, *, persistent: bool = True) -> None:
        """Send ``payload`` to ``queue_name``.

        Raises:
            PublishAppError: If the broker does not accept the message.
        """
        ...

    @abstractmethod
    async def consume(self, queue_name: str, handler: MessageHandler) -> None:
        """Register ``handler`` for deliveries from ``queue_name`` with manual acks."""
        ...

    @abstractmethod
    async def ack(self, message: QueueMessage) -> None:
        """Mark ``message`` permanently consumed."""
        ...

    @abstractmethod
    async def reject(self, message: QueueMessage, *, requeue: bool = True) -> None:
        """Return ``message`` to its queue (requeue=True) or dead-letter/drop it."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...
