"""In-memory doubles for the broker, the store and the scheduler clock."""

from __future__ import annotations

import heapq
from collections import deque
from dataclasses import replace

from post_analyzer.adapters.queue.base import AbstractQueueClient, MessageHandler, QueueMessage
from post_analyzer.adapters.store.base import AbstractPostRepository
from post_analyzer.core.errors import (
    BrokerConnectionError,
    DuplicatePostError,
    PublishAppError,
    StoreAppError,
)
from post_analyzer.schemas.posts import PostAnalysis
from post_analyzer.utils.scheduler import DelayedTaskScheduler


class FakeClock:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class ManualScheduler(DelayedTaskScheduler):
    """Scheduler without a thread: due tasks run when the clock is advanced."""

    def __init__(self, clock: FakeClock) -> None:
        super().__init__(name="manual", clock=clock)
        self.clock = clock
        self._manual_running = False

    @property
    def running(self) -> bool:
        return self._manual_running

    def start(self) -> None:
        self._manual_running = True

    def shutdown(self, *, run_pending: bool = False, timeout: float | None = None) -> None:
        self._manual_running = False
        super().shutdown(run_pending=run_pending, timeout=timeout)

    def advance(self, seconds: float) -> None:
        """Move the clock forward and run every task that became due."""
        self.clock.advance(seconds)
        while self._heap and self._heap[0][0] <= self.clock():
            _, _, task = heapq.heappop(self._heap)
            self._run_task(task)


class InMemoryQueueClient(AbstractQueueClient):
    """Broker double with manual delivery and ack/reject bookkeeping."""

    def __init__(self, dead_letter_queue: str | None = "postAnalysisQueue.dead") -> None:
        self.dead_letter_queue = dead_letter_queue
        self.connected = False
        self.fail_connect = False
        self.fail_publish = False
        self.calls: list[str] = []
        self.queues: dict[str, deque[QueueMessage]] = {}
        self.durable: dict[str, bool] = {}
        self.handlers: dict[str, MessageHandler] = {}
        self.published: list[tuple[str, bytes, bool]] = []
        self.acked: list[QueueMessage] = []
        self.rejected: list[tuple[QueueMessage, bool]] = []
        self.dead_lettered: list[QueueMessage] = []
        self.dropped: list[QueueMessage] = []
        self._next_id = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.calls.append("connect")
        if self.fail_connect:
            raise BrokerConnectionError(code="broker_unreachable", message="broker down")
        self.connected = True

    async def declare_queue(self, name: str, *, durable: bool = True) -> None:
        self.calls.append("declare_queue")
        self.queues.setdefault(name, deque())
        self.durable[name] = durable

    async def publish(self, queue_name: str, payload: bytes, *, persistent: bool = True) -> None:
        if self.fail_publish or not self.connected:
            raise PublishAppError(code="publish_failed", message="Failed to create post")
        self._next_id += 1
        self.published.append((queue_name, payload, persistent))
        self.queues.setdefault(queue_name, deque()).append(
            QueueMessage(body=payload, message_id=f"m-{self._next_id}", raw=queue_name)
        )

    async def consume(self, queue_name: str, handler: MessageHandler) -> None:
        self.calls.append("consume")
        self.handlers[queue_name] = handler

    async def ack(self, message: QueueMessage) -> None:
        self.acked.append(message)

    async def reject(self, message: QueueMessage, *, requeue: bool = True) -> None:
        self.rejected.append((message, requeue))
        if requeue:
            self.queues[message.raw].append(replace(message, redelivered=True))
        elif self.dead_letter_queue:
            self.dead_lettered.append(message)
        else:
            # Broker discards rejected messages that have nowhere to go
            self.dropped.append(message)

    async def close(self) -> None:
        self.calls.append("close")
        self.connected = False

    async def deliver(self, queue_name: str, *, limit: int = 100) -> int:
        """Hand queued messages to the registered consumer; returns deliveries made."""
        handler = self.handlers[queue_name]
        delivered = 0
        queue = self.queues[queue_name]
        while queue and delivered < limit:
            await handler(queue.popleft())
            delivered += 1
        return delivered


class InMemoryPostRepository(AbstractPostRepository):
    """Store double counting reads and enforcing unique ids."""

    def __init__(self) -> None:
        self.rows: dict[str, PostAnalysis] = {}
        self.reads = 0
        self.fail_reads = False
        self.fail_writes = False
        self.fail_ping = False

    async def get_by_id(self, post_id: str) -> PostAnalysis | None:
        self.reads += 1
        if self.fail_reads:
            raise StoreAppError(code="store_read_failed", message="Failed to fetch post")
        return self.rows.get(post_id)

    async def insert(self, post: PostAnalysis) -> None:
        if self.fail_writes:
            raise StoreAppError(code="store_write_failed", message="Failed to store post analysis")
        if post.id in self.rows:
            raise DuplicatePostError(code="duplicate_post", message=f"Post '{post.id}' already exists")
        self.rows[post.id] = post

    async def ping(self) -> None:
        if self.fail_ping:
            raise StoreAppError(code="store_unreachable", message="database down")
