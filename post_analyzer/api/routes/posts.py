from fastapi import APIRouter, Depends, Request, status

from post_analyzer.core.rate_limit import enforce_rate_limit
from post_analyzer.schemas.posts import (
    CreatePostResponse,
    ErrorResponse,
    PostResponse,
    Submission,
)
from post_analyzer.services.post_service import PostService

router = APIRouter(
    prefix="/api/posts",
    tags=["Posts"],
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        429: {"model": ErrorResponse, "description": "Too many requests"},
        500: {"model": ErrorResponse, "description": "Queue or store failure"},
    },
)


def get_post_service(request: Request) -> PostService:
    return request.app.state.container.post_service


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CreatePostResponse,
)
async def create_post(
    submission: Submission,
    service: PostService = Depends(get_post_service),
) -> CreatePostResponse:
    """Enqueue a post for analysis.

    The post is analyzed asynchronously; its result becomes readable through
    ``GET /api/posts/{post_id}`` once the worker has stored it.

    Raises:
        PublishAppError: 500 if the broker rejects the message.
    """
    await service.create_post(submission)
    return CreatePostResponse(message="Post enqueued successfully")


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"model": ErrorResponse, "description": "Post not found"}},
)
async def get_post(
    post_id: str,
    service: PostService = Depends(get_post_service),
) -> PostResponse:
    """Return the stored analysis for ``post_id``, served from cache when fresh."""
    post = await service.get_post(post_id)
    return PostResponse(post=post)
