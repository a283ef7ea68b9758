"""Queue adapter layer - abstracts over the message broker."""

from post_analyzer.adapters.queue.base import AbstractQueueClient, MessageHandler, QueueMessage
from post_analyzer.adapters.queue.rabbitmq import AioPikaQueueClient

__all__ = [
    "AbstractQueueClient",
    "AioPikaQueueClient",
    "MessageHandler",
    "QueueMessage",
]
