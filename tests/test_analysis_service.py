"""Unit tests for post text metrics and submission decoding."""

import json

import pytest

from post_analyzer.core.errors import ValidationAppError
from post_analyzer.schemas.posts import Submission
from post_analyzer.services.analysis_service import (
    _round_half_up,
    analyze_submission,
    compute_metrics,
    decode_submission,
)


class TestComputeMetrics:
    """Word count and average word length."""

    def test_quick_brown_fox(self) -> None:
        """Four words of lengths 3, 5, 5, 3 average exactly 4."""
        assert compute_metrics("the quick brown fox") == (4, 4)

    def test_empty_text_has_no_words(self) -> None:
        assert compute_metrics("") == (0, 0)

    def test_whitespace_only_text_has_no_words(self) -> None:
        assert compute_metrics(" \t\n  ") == (0, 0)

    def test_whitespace_runs_and_edges_are_ignored(self) -> None:
        assert compute_metrics("  hello \n\n  world\t ") == (2, 5)

    def test_average_is_rounded(self) -> None:
        # (1 + 2) / 2 = 1.5 -> 2
        assert compute_metrics("a bb") == (2, 2)
        # (1 + 1 + 2) / 3 = 1.33 -> 1
        assert compute_metrics("a b cc") == (3, 1)

    def test_punctuation_counts_toward_length(self) -> None:
        # "hi," is 3 characters, "there!" is 6: 4.5 -> 5
        assert compute_metrics("hi, there!") == (2, 5)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (4.0, 4)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert _round_half_up(value) == expected


class TestDecodeSubmission:
    """Parsing queued payloads."""

    def test_valid_payload(self) -> None:
        payload = json.dumps({"id": "p1", "text": "hello"}).encode()

        submission = decode_submission(payload)

        assert submission == Submission(id="p1", text="hello")

    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            b"\xc3\x28",
            b"[]",
            b'{"id": "p1"}',
            b'{"text": "no id"}',
            b'{"id": "", "text": "empty id"}',
            b'{"id": "p1", "text": null}',
        ],
    )
    def test_malformed_payload_raises(self, payload: bytes) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            decode_submission(payload)

        assert exc_info.value.code == "malformed_submission"


def test_analyze_submission_builds_post() -> None:
    post = analyze_submission(Submission(id="p1", text="the quick brown fox"))

    assert post.id == "p1"
    assert post.text == "the quick brown fox"
    assert post.word_count == 4
    assert post.average_word_length == 4
