"""Pydantic schemas for post submissions and analysis results."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Submission(BaseModel):
    """A post queued for analysis.

    Doubles as the ``POST /api/posts`` request body and the queue message.
    """

    id: str = Field(..., min_length=1, description="Caller-supplied unique post id.")
    text: str = Field(..., description="Text to analyze.")


class PostAnalysis(BaseModel):
    """Stored analysis of a post. Serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str = Field(..., description="Post id.")
    text: str = Field(..., description="Original post text.")
    word_count: int = Field(..., ge=0, description="Number of whitespace-separated words.")
    average_word_length: int = Field(
        ...,
        ge=0,
        description="Mean word length, rounded to the nearest integer.",
    )


class CreatePostResponse(BaseModel):
    message: str = Field(..., description="Confirmation that the post was enqueued.")


class PostResponse(BaseModel):
    post: PostAnalysis


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable error message.")
    code: str | None = Field(None, description="Machine-readable error code.")
    request_id: str | None = Field(None, description="Correlation id of the failed request.")
