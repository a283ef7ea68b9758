"""Tests for the posts API routes.

The app is built with create_app() around a container whose broker, store and
scheduler are in-memory doubles, so the full startup sequence, throttle,
publish path, worker and read-through cache run without infrastructure.
"""

import asyncio
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from post_analyzer.core.app_factory import create_app
from post_analyzer.core.container import ServiceContainer
from post_analyzer.schemas.posts import PostAnalysis
from tests.fakes import InMemoryPostRepository, InMemoryQueueClient, ManualScheduler

QUEUE = "postAnalysisQueue"


@pytest.fixture
def client(container: ServiceContainer) -> Iterator[TestClient]:
    """Create FastAPI test client; entering it runs the startup sequence."""
    with TestClient(create_app(container)) as test_client:
        yield test_client


def _store(repository: InMemoryPostRepository, post_id: str = "p1") -> PostAnalysis:
    post = PostAnalysis(
        id=post_id,
        text="the quick brown fox",
        word_count=4,
        average_word_length=4,
    )
    repository.rows[post_id] = post
    return post


class TestCreatePost:

    def test_returns_201_and_publishes(
        self, client: TestClient, queue_client: InMemoryQueueClient
    ) -> None:
        response = client.post("/api/posts", json={"id": "p1", "text": "hello world"})

        assert response.status_code == 201
        assert response.json() == {"message": "Post enqueued successfully"}
        assert len(queue_client.published) == 1

    def test_publish_failure_returns_500(
        self, client: TestClient, queue_client: InMemoryQueueClient
    ) -> None:
        queue_client.fail_publish = True

        response = client.post("/api/posts", json={"id": "p1", "text": "hello"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to create post"

    def test_empty_text_is_accepted(
        self,
        client: TestClient,
        queue_client: InMemoryQueueClient,
        repository: InMemoryPostRepository,
    ) -> None:
        response = client.post("/api/posts", json={"id": "p", "text": ""})
        asyncio.run(queue_client.deliver(QUEUE))

        assert response.status_code == 201
        assert repository.rows["p"].word_count == 0
        assert repository.rows["p"].average_word_length == 0

    @pytest.mark.parametrize(
        "body",
        [{}, {"id": "p1"}, {"text": "no id"}, {"id": "", "text": "empty id"}],
    )
    def test_invalid_body_returns_422(
        self, client: TestClient, queue_client: InMemoryQueueClient, body: dict
    ) -> None:
        response = client.post("/api/posts", json=body)

        assert response.status_code == 422
        assert queue_client.published == []


class TestGetPost:

    def test_returns_post_with_camel_case_fields(
        self, client: TestClient, repository: InMemoryPostRepository
    ) -> None:
        _store(repository)

        response = client.get("/api/posts/p1")

        assert response.status_code == 200
        assert response.json() == {
            "post": {
                "id": "p1",
                "text": "the quick brown fox",
                "wordCount": 4,
                "averageWordLength": 4,
            }
        }

    def test_second_read_is_served_from_cache(
        self, client: TestClient, repository: InMemoryPostRepository
    ) -> None:
        _store(repository)

        first = client.get("/api/posts/p1")
        second = client.get("/api/posts/p1")

        assert first.json() == second.json()
        assert repository.reads == 1

    def test_missing_post_returns_404(
        self, client: TestClient, repository: InMemoryPostRepository
    ) -> None:
        response = client.get("/api/posts/missing")
        client.get("/api/posts/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "Post not found"
        assert repository.reads == 2

    def test_store_failure_returns_500(
        self, client: TestClient, repository: InMemoryPostRepository
    ) -> None:
        repository.fail_reads = True

        response = client.get("/api/posts/p1")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch post"


class TestThrottle:

    def test_rejects_requests_over_limit_with_429(
        self, client: TestClient, repository: InMemoryPostRepository
    ) -> None:
        _store(repository)

        statuses = [client.get("/api/posts/p1").status_code for _ in range(4)]

        assert statuses == [200, 200, 200, 429]

    def test_rejection_body_and_headers(self, client: TestClient) -> None:
        for _ in range(3):
            client.get("/api/posts/missing")

        response = client.post("/api/posts", json={"id": "p1", "text": "hello"})

        assert response.status_code == 429
        assert response.json()["error"] == "Too many requests"
        assert response.headers["Retry-After"] == "1"
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_rejected_request_does_no_work(
        self, client: TestClient, queue_client: InMemoryQueueClient
    ) -> None:
        for i in range(3):
            client.post("/api/posts", json={"id": f"p{i}", "text": "hello"})

        response = client.post("/api/posts", json={"id": "p9", "text": "hello"})

        assert response.status_code == 429
        assert len(queue_client.published) == 3

    def test_failed_requests_still_count_and_decay(
        self, client: TestClient, scheduler: ManualScheduler
    ) -> None:
        for _ in range(3):
            assert client.get("/api/posts/missing").status_code == 404
        assert client.get("/api/posts/missing").status_code == 429

        scheduler.advance(1.0)

        assert client.get("/api/posts/missing").status_code == 404

    def test_health_is_not_throttled(self, client: TestClient) -> None:
        statuses = {client.get("/health").status_code for _ in range(10)}

        assert statuses == {200}

    def test_throttle_can_be_disabled(self, container: ServiceContainer) -> None:
        container.settings.throttle.enabled = False
        with TestClient(create_app(container)) as client:
            statuses = {client.get("/api/posts/missing").status_code for _ in range(10)}

        assert statuses == {404}


def test_submission_round_trip_through_worker(
    client: TestClient,
    queue_client: InMemoryQueueClient,
    repository: InMemoryPostRepository,
) -> None:
    client.post("/api/posts", json={"id": "p1", "text": "the quick brown fox"})

    asyncio.run(queue_client.deliver(QUEUE))
    response = client.get("/api/posts/p1")

    assert len(queue_client.acked) == 1
    assert response.json()["post"]["wordCount"] == 4
    assert response.json()["post"]["averageWordLength"] == 4
