"""Create/read operations behind the posts API.

Creating a post only enqueues it; the analysis worker persists the result
asynchronously. Reading goes through a read-through TTL cache: hits never touch
the store, misses read the store and cache what they find. Missing posts are
not cached, so repeated lookups of an unknown id always reach the store.
"""

from __future__ import annotations

import logging

from post_analyzer.adapters.queue.base import AbstractQueueClient
from post_analyzer.adapters.store.base import AbstractPostRepository
from post_analyzer.core.errors import NotFoundAppError
from post_analyzer.schemas.posts import PostAnalysis, Submission
from post_analyzer.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)

# Lifetime of a cached post
POST_CACHE_TTL_SECONDS = 60


class PostService:
    """Publishes submissions and serves stored analyses.

    Attributes:
        queue_client: Connected queue client used to publish submissions.
        repository: Store holding analyzed posts.
        cache: Read-through cache keyed by post id.
        queue_name: Queue submissions are published to.
        cache_ttl_seconds: TTL applied to cached posts.
    """

    def __init__(
        self,
        *,
        queue_client: AbstractQueueClient,
        repository: AbstractPostRepository,
        cache: SimpleTTLCache,
        queue_name: str,
        cache_ttl_seconds: float = POST_CACHE_TTL_SECONDS,
    ) -> None:
        self.queue_client = queue_client
        self.repository = repository
        self.cache = cache
        self.queue_name = queue_name
        self.cache_ttl_seconds = cache_ttl_seconds

    async def create_post(self, submission: Submission) -> None:
        """Publish ``submission`` for asynchronous analysis.

        Raises:
            PublishAppError: If the broker does not accept the message. The
                submission is not retried.
        """
        payload = submission.model_dump_json().encode("utf-8")
        await self.queue_client.publish(self.queue_name, payload, persistent=True)
        logger.info("post.enqueued", extra={"post_id": submission.id, "queue": self.queue_name})

    async def get_post(self, post_id: str) -> PostAnalysis:
        """Return the analysis for ``post_id``.

        Raises:
            NotFoundAppError: If no post with this id has been stored.
            StoreAppError: If the store cannot be read.
        """
        cached = self.cache.get(post_id)
        if cached is not None:
            return cached

        post = await self.repository.get_by_id(post_id)
        if post is None:
            logger.info("post.not_found", extra={"post_id": post_id})
            raise NotFoundAppError(
                code="post_not_found",
                message="Post not found",
                details={"post_id": post_id},
            )

        self.cache.put(post_id, post, self.cache_ttl_seconds)
        return post
