"""Service container and startup sequence.

All shared state (counter store, result cache, queue connection, DB engine)
lives on one container instance created at startup and handed to the HTTP
layer through ``app.state``. Nothing is module-global, so tests can build a
container around in-memory doubles.

Startup order is strict and any failure aborts it:
    connect broker -> declare queue -> check database -> start scheduler
    -> register consumer
Only after ``start()`` returns does the app accept requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncEngine

from post_analyzer.adapters.queue.base import AbstractQueueClient
from post_analyzer.adapters.queue.rabbitmq import AioPikaQueueClient
from post_analyzer.adapters.rate_limit.base import AbstractRateLimiter
from post_analyzer.adapters.rate_limit.counter_store import InMemoryCounterStore
from post_analyzer.adapters.rate_limit.in_memory import InMemoryLeakyBucketRateLimiter
from post_analyzer.adapters.store.base import AbstractPostRepository
from post_analyzer.adapters.store.postgres import SqlAlchemyPostRepository, build_engine, ensure_schema
from post_analyzer.core.config import Settings
from post_analyzer.services.analysis_worker import AnalysisWorker
from post_analyzer.services.post_service import PostService
from post_analyzer.utils.scheduler import DelayedTaskScheduler
from post_analyzer.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Wires the throttle, cache, queue, store, post service and worker."""

    settings: Settings
    queue_client: AbstractQueueClient
    repository: AbstractPostRepository
    scheduler: DelayedTaskScheduler
    rate_limiter: AbstractRateLimiter
    cache: SimpleTTLCache
    post_service: PostService
    worker: AnalysisWorker
    engine: AsyncEngine | None = None
    started: bool = field(default=False, init=False)

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        queue_client: AbstractQueueClient | None = None,
        repository: AbstractPostRepository | None = None,
        scheduler: DelayedTaskScheduler | None = None,
    ) -> "ServiceContainer":
        """Assemble the container from settings.

        Collaborators that are passed in are used as-is; the rest are built
        from configuration (RabbitMQ via aio-pika, PostgreSQL via SQLAlchemy).
        """
        engine: AsyncEngine | None = None
        if repository is None:
            engine = build_engine(settings.db)
            repository = SqlAlchemyPostRepository.from_engine(engine)

        if queue_client is None:
            queue_client = AioPikaQueueClient(
                settings.mq.server,
                prefetch_count=settings.mq.prefetch_count,
                dead_letter_queue=settings.mq.dead_letter_queue,
            )

        scheduler = scheduler or DelayedTaskScheduler(name="throttle-decay")
        rate_limiter = InMemoryLeakyBucketRateLimiter(
            store=InMemoryCounterStore(window_seconds=settings.throttle.window_seconds),
            scheduler=scheduler,
            max_requests=settings.throttle.max_requests,
            delay_seconds=settings.throttle.delay_seconds,
        )

        cache = SimpleTTLCache(
            default_ttl_seconds=settings.cache.ttl_seconds,
            max_entries=settings.cache.max_entries,
        )
        post_service = PostService(
            queue_client=queue_client,
            repository=repository,
            cache=cache,
            queue_name=settings.mq.queue_name,
            cache_ttl_seconds=settings.cache.ttl_seconds,
        )
        # Without a dead-letter queue a non-requeued reject discards the message
        max_delivery_attempts = settings.mq.max_delivery_attempts
        if max_delivery_attempts and not settings.mq.dead_letter_queue:
            logger.warning(
                "worker.attempt_cap_disabled",
                extra={"reason": "no_dead_letter_queue", "max_delivery_attempts": max_delivery_attempts},
            )
            max_delivery_attempts = 0

        worker = AnalysisWorker(
            queue_client=queue_client,
            repository=repository,
            queue_name=settings.mq.queue_name,
            max_delivery_attempts=max_delivery_attempts,
        )

        return cls(
            settings=settings,
            queue_client=queue_client,
            repository=repository,
            scheduler=scheduler,
            rate_limiter=rate_limiter,
            cache=cache,
            post_service=post_service,
            worker=worker,
            engine=engine,
        )

    async def start(self) -> None:
        """Run the startup sequence. Raises on the first failing step."""
        if self.started:
            return

        queue_name = self.settings.mq.queue_name

        await self.queue_client.connect()
        await self.queue_client.declare_queue(queue_name, durable=True)

        if self.engine is not None and self.settings.db.create_schema:
            await ensure_schema(self.engine)
        await self.repository.ping()

        self.scheduler.start()
        await self.worker.start()

        self.started = True
        logger.info("service.started", extra={"queue": queue_name})

    async def stop(self) -> None:
        """Release broker, scheduler and database resources."""
        self.started = False
        try:
            await self.queue_client.close()
        finally:
            self.scheduler.shutdown()
            if self.engine is not None:
                await self.engine.dispose()
        logger.info("service.stopped")
