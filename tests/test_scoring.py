from __future__ import annotations

import random

import pytest

from facility_audit.domain.models import AuditResponse, ComplianceRating, ResponseStatus
from facility_audit.scoring import classify, round_half_up, score, score_matches

from conftest import make_record


def _responses(*statuses: str) -> list[AuditResponse]:
    return [
        AuditResponse(question_id=f"q{i}", status=ResponseStatus(status))
        for i, status in enumerate(statuses)
    ]


def test_empty_responses_score_100() -> None:
    assert score([]) == 100


@pytest.mark.parametrize("count", [1, 3, 10])
def test_all_not_applicable_scores_100(count: int) -> None:
    assert score(_responses(*(["na"] * count))) == 100


def test_rounding_example() -> None:
    assert score(_responses("pass", "pass", "fail", "na")) == 67


def test_half_rounds_up() -> None:
    # 1 of 8 passing is 12.5%.
    assert score(_responses("pass", *(["fail"] * 7))) == 13


def test_all_fail_scores_zero() -> None:
    assert score(_responses("fail", "fail")) == 0


def test_score_is_order_independent_and_repeatable() -> None:
    responses = _responses("pass", "fail", "pass", "na", "pass", "fail", "fail")
    expected = score(responses)
    shuffled = list(responses)
    random.Random(7).shuffle(shuffled)

    assert score(responses) == expected
    assert score(shuffled) == expected
    assert score(frozenset(responses)) == expected


def test_round_half_up_rejects_zero_denominator() -> None:
    with pytest.raises(ValueError):
        round_half_up(1, 0)


@pytest.mark.parametrize(
    ("value", "rating"),
    [
        (0, ComplianceRating.RED),
        (79, ComplianceRating.RED),
        (80, ComplianceRating.YELLOW),
        (94, ComplianceRating.YELLOW),
        (95, ComplianceRating.GREEN),
        (100, ComplianceRating.GREEN),
    ],
)
def test_classify_boundaries(value: int, rating: ComplianceRating) -> None:
    assert classify(value) is rating


def test_classify_out_of_range_does_not_raise() -> None:
    assert classify(-5) is ComplianceRating.RED
    assert classify(140) is ComplianceRating.GREEN


def test_stored_score_matches_recomputation() -> None:
    record = make_record(statuses={"hh-1": "pass", "hh-2": "fail", "iso-1": "na"})
    assert record.overall_score == 50
    assert score_matches(record)


def test_divergent_stored_score_is_detected() -> None:
    record = make_record(statuses={"hh-1": "pass", "hh-2": "fail"}, score=90)
    assert not score_matches(record)
