"""Text metrics computed for each submitted post.

Pure functions with no I/O: the analysis worker calls them between decoding
a queued submission and persisting the result.
"""

import json
import math

from pydantic import ValidationError

from post_analyzer.core.errors import ValidationAppError
from post_analyzer.schemas.posts import PostAnalysis, Submission


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def compute_metrics(text: str) -> tuple[int, int]:
    """Count words and their mean length.

    Words are the pieces left after splitting on runs of whitespace, so
    leading/trailing whitespace never produces empty words.

    Args:
        text: Post text.

    Returns:
        Tuple of (word_count, average_word_length). Both are 0 for text with
        no words.
    """
    words = text.split()
    word_count = len(words)
    if word_count == 0:
        return 0, 0

    total_word_length = sum(len(word) for word in words)
    return word_count, _round_half_up(total_word_length / word_count)


def decode_submission(payload: bytes) -> Submission:
    """Parse a queued message body into a Submission.

    Raises:
        ValidationAppError: If the payload is not valid JSON or lacks id/text.
    """
    try:
        return Submission.model_validate(json.loads(payload))
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
        raise ValidationAppError(
            code="malformed_submission",
            message=f"Queued payload is not a valid submission: {exc}",
        ) from exc


def analyze_submission(submission: Submission) -> PostAnalysis:
    """Build the stored analysis for a submission."""
    word_count, average_word_length = compute_metrics(submission.text)
    return PostAnalysis(
        id=submission.id,
        text=submission.text,
        word_count=word_count,
        average_word_length=average_word_length,
    )
